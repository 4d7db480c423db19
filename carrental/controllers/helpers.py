from flask import request


def body() -> dict:
    """Request payload from a JSON body or, failing that, a submitted form."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()


def truthy(value) -> bool:
    """JSON booleans pass through; strings such as 'false' or '0' from forms are read as text."""
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def flag(name: str) -> bool:
    return truthy(request.args.get(name) or "")
