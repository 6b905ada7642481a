import asyncio

from portfolio_agent.agent.handlers import ServerToolHandlers
from portfolio_agent.agent.schemas import ProcessUploadedFileArgs
from portfolio_agent.content.store import NavigationHistoryStore, PortfolioStore, UploadedFile
from portfolio_agent.types import AccessLevel, ExecutionContext


def test_history_caps_number_of_sessions() -> None:
    history = NavigationHistoryStore(max_sessions=3)

    for i in range(10_000):
        history.record_tool_call(f"session-{i}", "searchProjects", success=True, tool_call_id=str(i))

    assert history.session_count() == 3
    assert history.history("session-0") == []
    assert history.history("session-9999")[0].details["toolCallId"] == "9999"


def test_history_evicts_least_recently_written_session() -> None:
    history = NavigationHistoryStore(max_sessions=2)

    history.record_page_visit("a", "/")
    history.record_page_visit("b", "/about")
    history.record_page_visit("a", "/projects")
    history.record_page_visit("c", "/contact")

    assert [e.target for e in history.history("a")] == ["/", "/projects"]
    assert history.history("b") == []
    assert history.session_count() == 2


def test_history_entries_per_session_are_bounded() -> None:
    history = NavigationHistoryStore(max_entries_per_session=2)

    for path in ("/", "/about", "/contact"):
        history.record_page_visit("s", path)

    assert [e.target for e in history.history("s")] == ["/about", "/contact"]


def test_added_upload_is_available_to_file_processing() -> None:
    store = PortfolioStore()
    store.add_upload(
        UploadedFile(
            id="file-new",
            file_type="job_spec",
            filename="role.txt",
            text="Backend role using Python and Kubernetes.",
        )
    )
    premium = ExecutionContext(session_id="s", access_level=AccessLevel.PREMIUM)

    data = asyncio.run(
        ServerToolHandlers(store).process_uploaded_file(
            ProcessUploadedFileArgs(file_id="file-new", file_type="job_spec", analysis_type="analyze_content"),
            premium,
        )
    )

    assert store.get_upload("file-new").filename == "role.txt"
    assert data["analysis"]["technologies"] == ["python", "kubernetes"]
    assert "backend" in data["analysis"]["skills"]
