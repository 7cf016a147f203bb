from datetime import datetime



# Simply returns the current local time as an aware datetime.
def now_local():
    return datetime.now().astimezone()

# Simply returns the current local time as an ISO8601 string with timezone offset.
def now_iso():
    return now_local().isoformat()


# Parses an ISO8601 string back into an aware datetime. Strings without an offset are taken as local time, which is
# how older saves wrote them.
def parse_iso(text):
    if not isinstance(text, str):
        raise TypeError(f"Expected an ISO8601 string, got {type(text).__name__}")
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.astimezone()
    return parsed
