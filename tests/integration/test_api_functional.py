from fastapi.testclient import TestClient


def test_api_catalog_execute_status_and_metrics() -> None:
    from portfolio_agent.api.main import app, services

    client = TestClient(app)

    health = client.get("/health")
    assert health.status_code == 200
    assert health.json()["tools"] == 21

    tools_resp = client.get("/ai/tools")
    assert tools_resp.status_code == 200
    tools_payload = tools_resp.json()
    assert tools_payload["success"] is True
    assert tools_payload["count"] == 11
    assert all(tool["executionContext"] == "server" for tool in tools_payload["tools"])

    catalog = client.get("/ai/tools/catalog").json()
    assert catalog["stats"]["clientTools"] == 10
    assert "navigateTo" in catalog["clientTools"]
    assert {tool["type"] for tool in catalog["tools"]} == {"function"}

    execute_resp = client.post(
        "/ai/tools/execute",
        json={
            "toolName": "searchProjects",
            "parameters": {"query": "api"},
            "sessionId": "api-test",
        },
    )
    assert execute_resp.status_code == 200
    assert execute_resp.json()["data"]["results"][0]["id"] == "project-2"

    reflink = services.reflinks.create_reflink("api-test-link")
    premium_resp = client.post(
        "/ai/tools/execute",
        json={
            "toolName": "processUploadedFile",
            "parameters": {"fileId": "file-job-1", "fileType": "job_spec"},
            "reflinkId": reflink.code,
        },
    )
    assert premium_resp.status_code == 200
    assert premium_resp.json()["metadata"]["costTracking"]["reflinkId"] == reflink.id
    assert reflink.code not in client.get("/telemetry/events", params={"limit": 50}).text

    denied = client.post(
        "/ai/tools/execute", json={"toolName": "processJobSpec", "parameters": {"jobSpec": "x"}}
    )
    assert denied.status_code == 403

    misrouted = client.post(
        "/ai/tools/execute", json={"toolName": "scrollIntoView", "parameters": {"selector": "#a"}}
    )
    assert misrouted.status_code == 400

    broken = client.post(
        "/ai/tools/execute",
        content=b"{not json",
        headers={"content-type": "application/json"},
    )
    assert broken.status_code == 400
    assert broken.json()["errorCode"] == "validation_error"

    events = client.get("/telemetry/events", params={"limit": 2}).json()["items"]
    assert [e["event_type"] for e in events] == ["tool_call_start", "tool_call_complete"]
    assert events[0]["tool_name"] == "scrollIntoView"

    metrics_resp = client.get("/metrics")
    assert metrics_resp.status_code == 200
    assert metrics_resp.json()["total_calls"] >= 4
    assert metrics_resp.json()["errors_by_code"]["authorization_error"] >= 1


def test_api_status_activity_and_navigation() -> None:
    from portfolio_agent.api.main import app

    client = TestClient(app)

    status = client.get("/ai/status")
    assert status.status_code == 200
    names = [provider["name"] for provider in status.json()["providers"]]
    assert names == ["openai", "anthropic", "elevenlabs"]
    assert status.json()["cache"]["size"]["totalEntries"] == 3

    refreshed = client.post("/ai/status/refresh")
    assert refreshed.status_code == 200
    assert refreshed.json()["refreshed"] == names

    activity = client.post("/ai/activity")
    assert activity.json()["active"] is True

    navigation = client.post("/ai/navigation", json={"sessionId": "nav", "path": "/about"})
    assert navigation.status_code == 200
    assert navigation.json()["entry"]["target"] == "/about"

    assert client.get("/telemetry/events", params={"limit": -1}).status_code == 400
