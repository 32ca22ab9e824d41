"""Compile a pair's image into a MindAR ``.mind`` target and report back.

Usage::

    MINDAR_JOB_SECRET=... python -m vidcom.jobs.mindar PAIR_ID IMAGE_URL [API_BASE]

Arguments fall back to ``PAIR_ID``, ``IMAGE_PUBLIC_URL`` and ``API_BASE``.
The compiled file goes through the normal sign/put/complete upload flow,
then ``/jobs/mindar/complete`` is called with the new asset id, or with
the error message if any step fails. Single shot, no retries.
"""
import argparse
import base64
import logging
import os
import sys
from dataclasses import dataclass
from typing import Callable

import httpx

logger = logging.getLogger("vidcom.jobs.mindar")

MINDAR_SCRIPT_URL = "https://cdn.jsdelivr.net/npm/mind-ar@1.2.5/dist/mindar-image.prod.js"
DEFAULT_API_BASE = "http://localhost:8000"
MIND_MIME = "application/octet-stream"

_COMPILE_JS = """async (imageDataUrl) => {
  const img = new Image();
  img.src = imageDataUrl;
  await img.decode();
  const { Compiler } = window.MINDAR.IMAGE || window.MINDAR;
  const compiler = new Compiler();
  await compiler.compileImageTargets([img], () => {});
  const buffer = await compiler.exportData();
  const bytes = new Uint8Array(buffer);
  let binary = "";
  for (let i = 0; i < bytes.length; i += 1) {
    binary += String.fromCharCode(bytes[i]);
  }
  return btoa(binary);
}"""


class JobError(Exception):
    pass


@dataclass
class JobConfig:
    pair_id: str
    image_url: str
    api_base: str
    job_secret: str

    @property
    def headers(self) -> dict[str, str]:
        return {"x-job-secret": self.job_secret}


def _read_json(resp: httpx.Response) -> dict:
    try:
        data = resp.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def download_image_data_url(client: httpx.Client, url: str) -> str:
    resp = client.get(url)
    if resp.status_code >= 400:
        raise JobError(f"Failed to fetch image ({resp.status_code})")
    mime = resp.headers.get("content-type", "image/jpeg").split(";")[0].strip()
    return f"data:{mime};base64,{base64.b64encode(resp.content).decode('ascii')}"


def compile_mind_target(image_data_url: str) -> bytes:
    """Run the MindAR browser compiler in headless Chromium."""
    from playwright.sync_api import sync_playwright

    with sync_playwright() as p:
        browser = p.chromium.launch(headless=True, args=["--no-sandbox", "--disable-setuid-sandbox"])
        try:
            page = browser.new_page()
            page.goto("about:blank")
            page.add_script_tag(url=MINDAR_SCRIPT_URL)
            encoded = page.evaluate(_COMPILE_JS, image_data_url)
        finally:
            browser.close()
    if not encoded:
        raise JobError("Compiler returned no data")
    return base64.b64decode(encoded)


def upload_mind_file(client: httpx.Client, config: JobConfig, data: bytes) -> str:
    filename = f"pair-{config.pair_id}.mind"

    sign_resp = client.post(
        f"{config.api_base}/uploads/sign",
        headers=config.headers,
        json={"kind": "mind", "mime": MIND_MIME, "filename": filename, "size": len(data)},
    )
    if sign_resp.status_code >= 400:
        raise JobError(f"Upload sign failed ({sign_resp.status_code}): {sign_resp.text}")
    sign = _read_json(sign_resp)
    if not sign.get("uploadUrl") or not sign.get("storageKey"):
        raise JobError("Upload sign response missing uploadUrl/storageKey")

    put_resp = client.put(sign["uploadUrl"], headers={"content-type": MIND_MIME}, content=data)
    if put_resp.status_code >= 400:
        raise JobError(f"Upload put failed ({put_resp.status_code}): {put_resp.text}")

    complete_resp = client.post(
        f"{config.api_base}/uploads/complete",
        headers=config.headers,
        json={
            "kind": "mind",
            "storageKey": sign["storageKey"],
            "mime": MIND_MIME,
            "filename": filename,
            "size": len(data),
        },
    )
    if complete_resp.status_code >= 400:
        raise JobError(f"Upload complete failed ({complete_resp.status_code}): {complete_resp.text}")
    asset_id = _read_json(complete_resp).get("id")
    if not asset_id:
        raise JobError("Upload complete response missing asset id")
    return asset_id


def report_completion(client: httpx.Client, config: JobConfig, payload: dict) -> None:
    try:
        resp = client.post(f"{config.api_base}/jobs/mindar/complete", headers=config.headers, json=payload)
    except httpx.HTTPError as e:
        logger.error("Failed to report job completion: %s", e)
        return
    if resp.status_code >= 400:
        logger.error("Failed to report job completion: %s %s", resp.status_code, resp.text)


def run(
    config: JobConfig,
    client: httpx.Client | None = None,
    compiler: Callable[[str], bytes] = compile_mind_target,
) -> int:
    owns_client = client is None
    client = client or httpx.Client(timeout=120.0, follow_redirects=True)
    try:
        try:
            logger.info("Downloading image: %s", config.image_url)
            data_url = download_image_data_url(client, config.image_url)

            logger.info("Compiling MindAR target...")
            mind = compiler(data_url)
            logger.info("Compiled .mind (%d bytes)", len(mind))

            logger.info("Uploading .mind file...")
            asset_id = upload_mind_file(client, config, mind)
            logger.info("Uploaded .mind asset: %s", asset_id)
        except Exception as e:
            message = str(e) or e.__class__.__name__
            logger.error("Error: %s", message)
            report_completion(client, config, {"pairId": config.pair_id, "error": message})
            return 1

        report_completion(client, config, {"pairId": config.pair_id, "mindAssetId": asset_id})
        logger.info("Done.")
        return 0
    finally:
        if owns_client:
            client.close()


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="vidcom.jobs.mindar", description=__doc__.splitlines()[0])
    parser.add_argument("pair_id", nargs="?", default=os.environ.get("PAIR_ID"))
    parser.add_argument("image_url", nargs="?", default=os.environ.get("IMAGE_PUBLIC_URL"))
    parser.add_argument("api_base", nargs="?", default=os.environ.get("API_BASE", DEFAULT_API_BASE))
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=logging.INFO, format="[mindar] %(message)s")
    args = parse_args(argv)
    job_secret = os.environ.get("MINDAR_JOB_SECRET", "")

    if not args.pair_id or not args.image_url:
        logger.error("PAIR_ID and IMAGE_PUBLIC_URL are required.")
        return 2
    if not job_secret:
        logger.error("MINDAR_JOB_SECRET is required.")
        return 2

    config = JobConfig(
        pair_id=args.pair_id,
        image_url=args.image_url,
        api_base=args.api_base.rstrip("/"),
        job_secret=job_secret,
    )
    return run(config)


if __name__ == "__main__":
    sys.exit(main())
