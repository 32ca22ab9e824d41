import io

import pytest
from PIL import Image

from vidcom.services.fingerprint import compute_fingerprint, deserialize_fingerprint, serialize_fingerprint


def _png(color, size=(40, 20)):
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


def test_fingerprint_shape():
    fingerprint = compute_fingerprint(_png((10, 20, 30)))

    assert fingerprint["v"] == 1
    assert fingerprint["w"] == fingerprint["h"] == 16
    assert len(fingerprint["data"]) == 256


def test_fingerprint_uses_luma_weights():
    fingerprint = compute_fingerprint(_png((255, 0, 0)), size=4)
    assert fingerprint["data"] == [76] * 16


def test_fingerprint_rejects_bad_size():
    with pytest.raises(ValueError):
        compute_fingerprint(_png((0, 0, 0)), size=0)


def test_fingerprint_is_stored_opaquely():
    raw = serialize_fingerprint({"v": 1, "w": 1, "h": 1, "data": [9]})

    assert raw == '{"v":1,"w":1,"h":1,"data":[9]}'
    assert deserialize_fingerprint(raw) == {"v": 1, "w": 1, "h": 1, "data": [9]}
    assert serialize_fingerprint("already-serialized") == "already-serialized"
    assert deserialize_fingerprint("not json") == "not json"
    assert deserialize_fingerprint(None) is None
