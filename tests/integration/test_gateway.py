import asyncio
from datetime import datetime, timedelta, timezone

from portfolio_agent.api.main import AppServices, build_services
from portfolio_agent.obs.tracing import TOOL_CALL_COMPLETE, TOOL_CALL_START
from portfolio_agent.types import ToolCall


def _services() -> AppServices:
    return build_services(environ={})


def _call(services: AppServices, body: object):
    return asyncio.run(services.gateway.handle(body))


def test_malformed_bodies_are_rejected_before_dispatch() -> None:
    services = _services()

    missing_name = _call(services, {"parameters": {}})
    bad_params = _call(services, {"toolName": "searchProjects", "parameters": "react"})
    not_object = _call(services, ["searchProjects"])

    assert missing_name.status_code == 400
    assert missing_name.result.error == "Tool name is required and must be a string."
    assert bad_params.status_code == 400
    assert bad_params.result.error_code == "validation_error"
    assert not_object.status_code == 400
    assert services.events.list_recent() == []


def test_unknown_and_client_tools_map_to_http_statuses() -> None:
    services = _services()

    unknown = _call(services, {"toolName": "nope", "parameters": {}})
    client = _call(services, {"toolName": "navigateTo", "parameters": {"path": "/about"}})

    assert unknown.status_code == 404
    assert unknown.result.error == "Tool 'nope' not found in registry."
    assert client.status_code == 400
    assert client.result.error_code == "misrouted"
    assert client.result.error == "Tool 'navigateTo' is not a server-side tool."


def test_invalid_reflink_is_denied_with_no_access() -> None:
    services = _services()
    expired = services.reflinks.create_reflink(
        "old-link", expires_at=datetime.now(timezone.utc) - timedelta(days=1)
    )

    missing = _call(
        services,
        {"toolName": "searchProjects", "parameters": {"query": "react"}, "reflinkId": "bogus"},
    )
    stale = _call(
        services,
        {"toolName": "searchProjects", "parameters": {"query": "react"}, "reflinkId": expired.code},
    )

    assert missing.status_code == 403
    assert missing.result.error == "Invalid reflink code"
    assert missing.to_wire()["metadata"]["accessLevel"] == "no_access"
    assert stale.status_code == 403
    assert stale.result.error.startswith("Reflink has expired")


def test_anonymous_call_succeeds_with_basic_access() -> None:
    services = _services()

    response = _call(services, {"toolName": "searchProjects", "parameters": {"query": "react"}})
    wire = response.to_wire()

    assert response.status_code == 200
    assert wire["success"] is True
    assert wire["data"]["accessLevel"] == "basic"
    assert wire["metadata"]["sessionId"] == "anonymous"
    assert wire["metadata"]["toolCallId"].startswith("tool_")
    assert "costTracking" not in wire["metadata"]


def test_premium_call_tracks_usage_and_reports_cost() -> None:
    services = _services()
    reflink = services.reflinks.create_reflink("acme-recruiter", recipient_name="Acme")
    body = {
        "toolName": "processJobSpec",
        "parameters": {"jobSpec": "React and TypeScript frontend role, 3+ years experience"},
        "sessionId": "recruiter-1",
        "reflinkId": reflink.code,
    }

    first = _call(services, body)
    second = _call(services, body)

    assert first.status_code == 200
    first_cost = first.to_wire()["metadata"]["costTracking"]
    second_cost = second.to_wire()["metadata"]["costTracking"]
    assert first_cost["reflinkId"] == reflink.id
    assert first_cost["estimatedCost"] == services.config.budget.cost_per_tool_call_usd
    assert second_cost["remainingBudget"] < first_cost["remainingBudget"] < reflink.spend_limit
    assert len(services.reflinks.usage_log()) == 2
    assert services.reflinks.usage_log()[0][1].model_used == "tool:processJobSpec"


def test_basic_caller_cannot_reach_premium_tool() -> None:
    services = _services()

    response = _call(services, {"toolName": "processJobSpec", "parameters": {}})

    assert response.status_code == 403
    assert response.result.error_code == "authorization_error"
    assert services.reflinks.usage_log() == []


def test_failed_premium_call_is_not_charged() -> None:
    services = _services()
    reflink = services.reflinks.create_reflink("acme")

    response = _call(
        services,
        {
            "toolName": "processUploadedFile",
            "parameters": {"fileId": "missing", "fileType": "resume"},
            "reflinkId": reflink.code,
        },
    )

    assert response.status_code == 500
    assert response.result.error_code == "handler_error"
    assert response.to_wire()["metadata"]["costTracking"]["remainingBudget"] == reflink.spend_limit
    assert services.reflinks.usage_log() == []


def test_lifecycle_events_and_history_are_recorded() -> None:
    services = _services()

    _call(
        services,
        {
            "toolName": "openProject",
            "parameters": {"query": "gateway"},
            "sessionId": "s1",
            "toolCallId": "call-1",
        },
    )

    start, complete = services.events.list_recent()
    assert (start.event_type, complete.event_type) == (TOOL_CALL_START, TOOL_CALL_COMPLETE)
    assert start.tool_call_id == complete.tool_call_id == "call-1"
    assert start.payload == {"args": {"query": "gateway"}, "hasReflink": False}
    assert complete.success is True
    assert [e.kind for e in services.history.history("s1")] == ["page_visit", "tool_call"]


def test_telemetry_never_carries_reflink_codes() -> None:
    services = _services()
    reflink = services.reflinks.create_reflink("secret-code-xyz")

    _call(
        services,
        {"toolName": "loadUserProfile", "parameters": {}, "reflinkId": reflink.code},
    )
    _call(services, {"toolName": "loadUserProfile", "parameters": {}, "reflinkId": "guessed-code"})

    dumped = repr(services.events.as_dicts(limit=10))
    assert services.events.list_recent()[0].payload["hasReflink"] is True
    assert "secret-code-xyz" not in dumped
    assert "guessed-code" not in dumped


def test_unresolved_tools_are_not_written_to_history() -> None:
    services = _services()

    for i in range(3):
        _call(services, {"toolName": f"made-up-{i}", "parameters": {}, "sessionId": f"rotating-{i}"})
    _call(services, {"toolName": "navigateTo", "parameters": {"path": "/"}, "sessionId": "client"})

    assert services.history.session_count() == 1
    assert services.history.history("client")[0].details["success"] is False


def test_concurrent_sessions_are_independent() -> None:
    services = _services()

    async def scenario() -> list:
        return await asyncio.gather(
            *(
                services.gateway.handle(
                    {
                        "toolName": "openProject",
                        "parameters": {"query": "dashboard"},
                        "sessionId": f"session-{i}",
                    }
                )
                for i in range(5)
            )
        )

    responses = asyncio.run(scenario())

    assert all(r.status_code == 200 for r in responses)
    assert [r.result.metadata.session_id for r in responses] == [f"session-{i}" for i in range(5)]
    for i in range(5):
        assert len(services.history.history(f"session-{i}")) == 2


def test_callable_map_routes_through_gateway() -> None:
    services = _services()
    reflink = services.reflinks.create_reflink("map-link")
    executor = services.gateway.executor_for("voice-session", reflink.code, provider="realtime")
    tools = services.registry.as_callable_map(executor)

    summary = asyncio.run(tools["getProjectSummary"]({"includePrivate": True}))
    direct = asyncio.run(
        services.gateway.execute_tool_call(
            ToolCall(id="c-1", name="loadUserProfile", arguments={}, session_id="direct")
        )
    )

    assert summary["success"] is True
    assert summary["data"]["totalProjects"] == 4
    assert summary["metadata"]["sessionId"] == "voice-session"
    assert summary["metadata"]["costTracking"]["reflinkId"] == reflink.id
    assert direct["metadata"]["toolCallId"] == "c-1"
    assert services.events.list_recent(event_type=TOOL_CALL_START)[0].provider == "realtime"
