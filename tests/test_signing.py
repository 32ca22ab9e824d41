from urllib.parse import parse_qs, urlparse

from vidcom.config import Settings
from vidcom.models.asset import Asset
from vidcom.services.signing import ASSET_PURPOSE, UPLOAD_PURPOSE, Signer


def _signer(**overrides):
    return Signer(Settings(_env_file=None, signing_secret="k", public_base_url="https://api.example.com/", **overrides))


def test_signature_binds_purpose_and_subject():
    signer = _signer()
    sig = signer.sign(UPLOAD_PURPOSE, "image/a/b.png", 100)

    assert signer.verify(UPLOAD_PURPOSE, "image/a/b.png", sig, 100)
    assert not signer.verify(ASSET_PURPOSE, "image/a/b.png", sig, 100)
    assert not signer.verify(UPLOAD_PURPOSE, "image/a/c.png", sig, 100)
    assert not signer.verify(UPLOAD_PURPOSE, "image/a/b.png", sig, 101)
    assert not signer.verify(UPLOAD_PURPOSE, "image/a/b.png", "")


def test_signature_depends_on_secret():
    other = Signer(Settings(_env_file=None, signing_secret="other"))
    assert _signer().sign(ASSET_PURPOSE, "id1") != other.sign(ASSET_PURPOSE, "id1")


def test_upload_url_embeds_expiry():
    signer = _signer(upload_url_ttl_seconds=60)
    url, expires = signer.upload_url("video/x/clip.mp4", "video/mp4", now=1000)

    assert expires == 1060
    parsed = urlparse(url)
    assert f"{parsed.scheme}://{parsed.netloc}{parsed.path}" == "https://api.example.com/uploads/put"
    query = parse_qs(parsed.query)
    assert signer.verify(UPLOAD_PURPOSE, query["key"][0], query["sig"][0], int(query["exp"][0]))


def test_asset_url_variants():
    asset = Asset(id="a1", storage_key="image/x/photo.png")

    assert _signer().asset_url(asset) == f"https://api.example.com/assets/a1?token={_signer().asset_token('a1')}"
    public = _signer(public_asset_base_url="https://cdn.example.com/")
    assert public.asset_url(asset) == "https://cdn.example.com/image/x/photo.png"
