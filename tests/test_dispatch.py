import json

import httpx
import pytest

from vidcom.services.mindar_dispatch import DISPATCH_FAILED_MESSAGE, MindarDispatcher

from conftest import create_experience, create_pair


def _use_dispatcher(app, transport=None, **overrides):
    settings = app.state.settings.model_copy(update=overrides)
    app.state.dispatcher = MindarDispatcher(settings, app.state.signer, transport=transport)


@pytest.mark.asyncio
async def test_workflow_dispatch_posts_inputs(app, client, auth_headers):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(204)

    _use_dispatcher(
        app,
        transport=httpx.MockTransport(handler),
        mindar_dispatch_mode="workflow",
        mindar_workflow_repo="acme/vidcom",
        mindar_workflow_token="gh-token",
        mindar_api_base_url="https://api.example.com/",
    )
    experience = await create_experience(client, auth_headers)
    pair, image, _ = await create_pair(client, auth_headers, experience["id"])

    assert pair["mind_target_status"] == "pending"
    assert len(calls) == 1
    request = calls[0]
    assert request.url == "https://api.github.com/repos/acme/vidcom/actions/workflows/mindar.yml/dispatches"
    assert request.headers["authorization"] == "Bearer gh-token"
    body = json.loads(request.content)
    assert body["ref"] == "main"
    assert body["inputs"]["pair_id"] == pair["id"]
    assert body["inputs"]["api_base"] == "https://api.example.com"
    assert f"/assets/{image['id']}?token=" in body["inputs"]["image_url"]


@pytest.mark.asyncio
async def test_workflow_dispatch_error_marks_failed(app, client, auth_headers):
    _use_dispatcher(
        app,
        transport=httpx.MockTransport(lambda request: httpx.Response(422, json={"message": "bad ref"})),
        mindar_dispatch_mode="workflow",
        mindar_workflow_repo="acme/vidcom",
        mindar_workflow_token="gh-token",
    )
    experience = await create_experience(client, auth_headers)
    pair, _, _ = await create_pair(client, auth_headers, experience["id"])

    assert pair["mind_target_status"] == "failed"
    assert pair["mind_target_error"] == DISPATCH_FAILED_MESSAGE
    assert pair["mind_target_completed_at"] is not None


@pytest.mark.asyncio
async def test_workflow_dispatch_without_repo_marks_failed(app, client, auth_headers):
    _use_dispatcher(app, mindar_dispatch_mode="workflow")
    experience = await create_experience(client, auth_headers)
    pair, _, _ = await create_pair(client, auth_headers, experience["id"])

    assert pair["mind_target_status"] == "failed"


@pytest.mark.asyncio
async def test_local_spawn_failure_marks_failed(app, client, auth_headers, monkeypatch):
    async def _broken_exec(*args, **kwargs):
        raise OSError("no such interpreter")

    monkeypatch.setattr("vidcom.services.mindar_dispatch.asyncio.create_subprocess_exec", _broken_exec)
    _use_dispatcher(app, mindar_dispatch_mode="local")
    experience = await create_experience(client, auth_headers)
    pair, _, _ = await create_pair(client, auth_headers, experience["id"])

    assert pair["mind_target_status"] == "failed"
    assert pair["mind_target_error"] == DISPATCH_FAILED_MESSAGE


@pytest.mark.asyncio
async def test_local_spawn_without_job_secret_marks_failed(app, client, auth_headers, monkeypatch):
    spawned = []

    async def _fake_exec(*args, **kwargs):
        spawned.append(args)

    monkeypatch.setattr("vidcom.services.mindar_dispatch.asyncio.create_subprocess_exec", _fake_exec)
    _use_dispatcher(app, mindar_dispatch_mode="local", job_secret="")
    experience = await create_experience(client, auth_headers)
    pair, _, _ = await create_pair(client, auth_headers, experience["id"])

    assert pair["mind_target_status"] == "failed"
    assert pair["mind_target_error"] == DISPATCH_FAILED_MESSAGE
    assert spawned == []


@pytest.mark.asyncio
async def test_local_spawn_passes_job_arguments(app, client, auth_headers, monkeypatch):
    spawned = {}

    class FakeProcess:
        async def wait(self):
            return 0

    async def _fake_exec(*args, **kwargs):
        spawned["args"] = args
        spawned["env"] = kwargs["env"]
        spawned["kwargs"] = kwargs
        return FakeProcess()

    monkeypatch.setattr("vidcom.services.mindar_dispatch.asyncio.create_subprocess_exec", _fake_exec)
    _use_dispatcher(app, mindar_dispatch_mode="local")
    experience = await create_experience(client, auth_headers)
    pair, _, _ = await create_pair(client, auth_headers, experience["id"])

    assert pair["mind_target_status"] == "pending"
    assert spawned["args"][1:4] == ("-m", "vidcom.jobs.mindar", pair["id"])
    assert spawned["args"][5] == "http://test"
    assert spawned["env"]["MINDAR_JOB_SECRET"] == app.state.settings.job_secret
    assert "stdout" not in spawned["kwargs"]
    assert "stderr" not in spawned["kwargs"]


@pytest.mark.asyncio
async def test_retry_after_dispatch_failure_redispatches(app, client, auth_headers):
    responses = iter([httpx.Response(500), httpx.Response(204)])
    _use_dispatcher(
        app,
        transport=httpx.MockTransport(lambda request: next(responses)),
        mindar_dispatch_mode="workflow",
        mindar_workflow_repo="acme/vidcom",
        mindar_workflow_token="gh-token",
    )
    experience = await create_experience(client, auth_headers)
    pair, _, _ = await create_pair(client, auth_headers, experience["id"])
    assert pair["mind_target_status"] == "failed"

    response = await client.post(f"/pairs/{pair['id']}/retry", headers=auth_headers)

    assert response.json()["mind_target_status"] == "pending"
    assert response.json()["mind_target_error"] is None
