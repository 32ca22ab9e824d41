from vidcom.utils.exceptions import AppException, Forbidden, NotFound, Unauthorized, ValidationFailed
from vidcom.utils.response import error_response, ok_response


def test_error_response():
    assert error_response("Experience not found") == {"error": "Experience not found"}


def test_ok_response_with_extra():
    assert ok_response() == {"ok": True}
    assert ok_response(deletedPairs=2) == {"ok": True, "deletedPairs": 2}


def test_exception_status_codes():
    assert ValidationFailed("bad").status_code == 400
    assert Unauthorized().status_code == 401
    assert Unauthorized().message == "Unauthorized"
    assert Forbidden().status_code == 403
    assert NotFound("gone").status_code == 404
    assert AppException("teapot", status_code=418).status_code == 418
