"""Trigger the external MindAR target compiler for a pair.

Dispatch is fire-and-forget: the pair is put back to ``pending`` and the
job is started, but its outcome only arrives later through the completion
callback. If starting the job fails, the pair is marked ``failed`` right
away with ``DISPATCH_FAILED_MESSAGE``.
"""
import asyncio
import logging
import os
import sys
from datetime import datetime, timezone

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from vidcom.config import Settings
from vidcom.models.asset import Asset
from vidcom.models.pair import Pair
from vidcom.services.signing import Signer

logger = logging.getLogger(__name__)

DISPATCH_FAILED_MESSAGE = "Failed to dispatch MindAR job"
GITHUB_API = "https://api.github.com"


def mark_pending(pair: Pair) -> None:
    now = datetime.now(timezone.utc).isoformat()
    pair.mind_target_status = "pending"
    pair.mind_target_error = None
    pair.mind_asset_id = None
    pair.mind_target_requested_at = now
    pair.mind_target_completed_at = None
    pair.updated_at = now


def mark_failed(pair: Pair, message: str) -> None:
    now = datetime.now(timezone.utc).isoformat()
    pair.mind_target_status = "failed"
    pair.mind_target_error = message
    pair.mind_asset_id = None
    pair.mind_target_completed_at = now
    pair.updated_at = now


def mark_ready(pair: Pair, mind_asset_id: str) -> None:
    now = datetime.now(timezone.utc).isoformat()
    pair.mind_target_status = "ready"
    pair.mind_target_error = None
    pair.mind_asset_id = mind_asset_id
    pair.mind_target_completed_at = now
    pair.updated_at = now


class MindarDispatcher:
    def __init__(self, settings: Settings, signer: Signer, transport: httpx.AsyncBaseTransport | None = None):
        self.settings = settings
        self.signer = signer
        self.mode = settings.mindar_dispatch_mode
        self._transport = transport
        self._background: set[asyncio.Task] = set()

    async def dispatch(self, db: AsyncSession, pair: Pair) -> Pair:
        mark_pending(pair)
        await db.commit()

        if self.mode == "none":
            logger.info("MindAR dispatch disabled; pair %s left pending", pair.id)
            return pair

        image = await db.get(Asset, pair.image_asset_id)
        try:
            if image is None:
                raise LookupError(f"Image asset {pair.image_asset_id} not found")
            await self._trigger(pair.id, self.signer.asset_url(image))
        except Exception as e:
            logger.warning("MindAR dispatch failed for pair %s (%s): %s", pair.id, self.mode, e)
            mark_failed(pair, DISPATCH_FAILED_MESSAGE)
            await db.commit()
            return pair

        logger.info("MindAR job dispatched for pair %s via %s", pair.id, self.mode)
        return pair

    async def _trigger(self, pair_id: str, image_url: str) -> None:
        if self.mode == "local":
            await self._spawn_local(pair_id, image_url)
        elif self.mode == "workflow":
            await self._dispatch_workflow(pair_id, image_url)
        else:
            raise ValueError(f"Unknown dispatch mode: {self.mode}")

    async def _spawn_local(self, pair_id: str, image_url: str) -> None:
        if not self.settings.job_secret:
            raise RuntimeError("JOB_SECRET is required for local MindAR jobs")
        env = {**os.environ, "MINDAR_JOB_SECRET": self.settings.job_secret}
        proc = await asyncio.create_subprocess_exec(
            sys.executable, "-m", "vidcom.jobs.mindar",
            pair_id, image_url, self.settings.api_base_for_jobs,
            env=env,
        )
        task = asyncio.create_task(self._reap(proc, pair_id))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _reap(self, proc: asyncio.subprocess.Process, pair_id: str) -> None:
        code = await proc.wait()
        logger.info("Local MindAR job for pair %s exited with %s", pair_id, code)

    async def _dispatch_workflow(self, pair_id: str, image_url: str) -> None:
        repo = self.settings.mindar_workflow_repo
        if not repo or not self.settings.mindar_workflow_token:
            raise RuntimeError("MINDAR_WORKFLOW_REPO and MINDAR_WORKFLOW_TOKEN are required")

        url = f"{GITHUB_API}/repos/{repo}/actions/workflows/{self.settings.mindar_workflow_file}/dispatches"
        async with httpx.AsyncClient(transport=self._transport, timeout=15.0) as client:
            resp = await client.post(
                url,
                headers={
                    "Authorization": f"Bearer {self.settings.mindar_workflow_token}",
                    "Accept": "application/vnd.github+json",
                },
                json={
                    "ref": self.settings.mindar_workflow_ref,
                    "inputs": {
                        "pair_id": pair_id,
                        "image_url": image_url,
                        "api_base": self.settings.api_base_for_jobs,
                    },
                },
            )
        resp.raise_for_status()
