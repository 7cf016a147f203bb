import json
from tt.common.logger import log
from tt.common.setup import PATHS
from tt.core.engine import TimerEngine
from tt.core.persistence import JsonFileScope
from tt.core.records import DEFAULT_QUICK_SAVE_DESCRIPTION, JsonRecordStore


#region === Helpers and Paths ===

SETTINGS_PATH = PATHS.current / "settings.json"
SCOPE_PATH = PATHS.current / "active_timer.json"
RECORDS_DIR = PATHS.records

# Default values for every setting, along with the type each one must have.
_SETTINGS_DEFAULTS = {
    "tick_interval_ms": 1000,
    "adjust_step_minutes": 6,
    "adjust_increment_minutes": 1,
    "quick_save_description": DEFAULT_QUICK_SAVE_DESCRIPTION,
    "always_on_top": True,
    "confirm_discard": True,
}

# Whether a loaded value can stand in for the given default. Ints have to be positive, bools have to really be bools
# (json gives us True for true, but isinstance(True, int) would let it through as a number).
def _valid_setting(value, default):
    if isinstance(default, bool):
        return isinstance(value, bool)
    if isinstance(default, int):
        return isinstance(value, int) and not isinstance(value, bool) and value > 0
    if isinstance(default, str):
        return isinstance(value, str) and value.strip() != ""
    return True

def build_default_settings():
    return dict(_SETTINGS_DEFAULTS)

#endregion === Helpers and Paths ===

#region === Saving and Loading Settings ===

# Loads settings.json, defaulting anything missing or invalid. A missing or unreadable file means full defaults.
def load_settings():
    if not SETTINGS_PATH.exists():
        log.info("No existing settings.json found in `current`, loading default settings.")
        return build_default_settings()
    try:
        with open(SETTINGS_PATH, "r", encoding="utf-8") as f:
            loaded = json.load(f)
    except (json.JSONDecodeError, OSError, UnicodeDecodeError):
        log.warning("Ran into an error while trying to load settings.json, falling back to default settings.",exc_info=True)
        return build_default_settings()
    if not isinstance(loaded, dict):
        log.warning("settings.json does not hold an object, falling back to default settings.")
        return build_default_settings()

    settings = build_default_settings()
    defaulted_values = set()
    for key, default in _SETTINGS_DEFAULTS.items():
        if key in loaded and _valid_setting(loaded[key], default):
            settings[key] = loaded[key]
        else:
            defaulted_values.add(key)

    if defaulted_values:
        log.warning(f"Loaded settings from '{SETTINGS_PATH}', but with missing or invalid values that were defaulted: {', '.join(sorted(defaulted_values))}")
    else:
        log.info(f"Successfully loaded settings from '{SETTINGS_PATH}'.")
    return settings

def save_settings(settings):
    SETTINGS_PATH.parent.mkdir(parents=True, exist_ok=True)
    with open(SETTINGS_PATH, "w", encoding="utf-8") as f:
        json.dump(settings, f, indent=2)
    log.info(f"Successfully saved settings to '{SETTINGS_PATH}'")

#endregion === Saving and Loading Settings ===

# Wires an engine to the on-disk scope and record store, using the given settings.
def build_engine(settings, scheduler=None, now=None):
    store = JsonRecordStore(RECORDS_DIR, quick_save_description=settings["quick_save_description"])
    scope = JsonFileScope(SCOPE_PATH)
    engine = TimerEngine(
        store,
        scope,
        scheduler=scheduler,
        now=now,
        tick_interval=settings["tick_interval_ms"] / 1000.0,
        adjust_increment=settings["adjust_increment_minutes"],
    )
    return engine, store
