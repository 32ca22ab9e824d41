def error_response(message: str) -> dict:
    return {"error": message}


def ok_response(**extra) -> dict:
    return {"ok": True, **extra}
