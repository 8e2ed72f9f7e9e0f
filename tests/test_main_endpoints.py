import dataclasses

import pytest

from agentdesk.__version__ import __version__
from agentdesk.channels import TwilioVoiceAdapter, get_adapter


def test_health_endpoint(api_client):
    resp = api_client().get("/api/health")

    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_version_endpoint(api_client):
    resp = api_client().get("/api/version")

    assert resp.status_code == 200
    assert resp.json() == {"version": __version__, "build_date": None, "commit_sha": None}


def test_metrics_endpoint(api_client):
    client = api_client()
    client.get("/api/health")

    resp = client.get("/api/metrics")

    assert resp.status_code == 200
    assert "http_request" in resp.text


def test_cors_for_admin_origins(harness, api_client):
    harness.settings = dataclasses.replace(
        harness.settings, cors_origins=("https://admin.example",)
    )

    resp = api_client().options(
        "/api/widget/chat",
        headers={
            "Origin": "https://admin.example",
            "Access-Control-Request-Method": "POST",
        },
    )

    assert resp.headers["access-control-allow-origin"] == "https://admin.example"


def test_shutdown_stops_pipeline_workers(harness, api_client):
    with api_client():
        pass

    with pytest.raises(RuntimeError):
        harness.container.pipeline._executor.submit(lambda: None)


def test_adapter_registry():
    assert get_adapter("VOICE") is TwilioVoiceAdapter
    with pytest.raises(KeyError):
        get_adapter("fax")
