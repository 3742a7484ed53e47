"""Tests for the issue service."""

import re

import pytest

from issue_ledger.backends.memory import InMemoryBackend
from issue_ledger.codec import SimulatedFheCodec
from issue_ledger.errors import BackendUnavailable, RecordNotFound, ValidationError
from issue_ledger.schemas import Issue, StatusCounts
from issue_ledger.service import IssueService, aggregate_by_status, filter_issues, generate_issue_id
from issue_ledger.store import INDEX_KEY, RecordStore


def _issue(issue_id, status="pending", category="Facility", data="FHE-abc"):
    return Issue(id=issue_id, data=data, timestamp=1, category=category, votes=0, status=status)


# ============================================================================
# SUBMIT
# ============================================================================


def test_submit_stores_pending_issue_with_encoded_payload(run, service):
    issue_id = run(service.submit("Safety", {"description": "broken bench"}))

    issue = run(service.get(issue_id))
    assert issue.category == "Safety"
    assert issue.votes == 0
    assert issue.status == "pending"
    assert issue.data != "broken bench"
    assert service.codec.decode(issue.data) == {"description": "broken bench"}


def test_submit_uses_clock_for_timestamp(run, backend):
    service = IssueService(backend, backend, codec=SimulatedFheCodec(), clock=lambda: 1_700_000_123.5)

    issue_id = run(service.submit("Other", {"description": "x"}))

    assert run(service.get(issue_id)).timestamp == 1_700_000_123
    assert issue_id.startswith("1700000123500-")


@pytest.mark.parametrize(
    "category, payload",
    [
        ("", {"description": "x"}),
        ("   ", {"description": "x"}),
        ("Safety", {}),
        ("Safety", {"description": "", "location": None}),
        ("Safety", {"description": "   "}),
    ],
)
def test_submit_rejects_empty_fields_before_io(run, backend, service, category, payload):
    with pytest.raises(ValidationError):
        run(service.submit(category, payload))
    assert backend.writes == []


def test_submit_without_signer_is_unavailable(run, backend):
    service = IssueService(backend.read_only_view(), codec=SimulatedFheCodec())

    with pytest.raises(BackendUnavailable):
        run(service.submit("Safety", {"description": "x"}))


def test_connect_and_disconnect_signer(run, backend):
    service = IssueService(backend.read_only_view(), codec=SimulatedFheCodec())

    service.connect_signer(backend)
    issue_id = run(service.submit("Safety", {"description": "x"}))
    service.disconnect_signer()

    with pytest.raises(BackendUnavailable):
        run(service.vote(issue_id))


def test_generated_ids_are_unique_and_well_formed():
    ids = {generate_issue_id(1_700_000_000.5) for _ in range(200)}

    assert len(ids) == 200
    assert all(re.fullmatch(r"1700000000500-[0-9a-z]{7}", issue_id) for issue_id in ids)


# ============================================================================
# LISTING
# ============================================================================


def test_sequential_submits_list_newest_first(run, service):
    submitted = [run(service.submit("Facility", {"description": f"issue {n}"})) for n in range(5)]

    issues = run(service.list_sorted())

    assert [issue.id for issue in issues] == list(reversed(submitted))


def test_list_sorted_rereads_backend(run, backend, service):
    run(service.submit("Facility", {"description": "first"}))
    assert len(run(service.list_sorted())) == 1

    other_client = IssueService(backend, backend, codec=SimulatedFheCodec())
    run(other_client.submit("Safety", {"description": "second"}))

    assert len(run(service.list_sorted())) == 2


def test_list_sorted_raises_when_backend_is_down(run):
    reader = InMemoryBackend()
    reader.available = False
    service = IssueService(reader, codec=SimulatedFheCodec())

    with pytest.raises(BackendUnavailable):
        run(service.list_sorted())
    assert run(service.check_availability()) is False


def test_reader_view_follows_writer_availability(run, backend):
    reader = backend.read_only_view()

    backend.available = False
    assert run(reader.is_available()) is False

    backend.available = True
    assert run(reader.is_available()) is True


def test_index_corruption_hides_issues_and_next_submit_recovers(run, backend, service):
    run(service.submit("Facility", {"description": "old"}))
    backend.data[INDEX_KEY] = b"\xff\x00not json"

    assert run(service.list_sorted()) == []

    new_id = run(service.submit("Safety", {"description": "new"}))

    assert new_id in run(RecordStore(backend).list_ids())
    assert [issue.id for issue in run(service.list_sorted())] == [new_id]


# ============================================================================
# VOTING
# ============================================================================


def test_sequential_votes_accumulate(run, service):
    issue_id = run(service.submit("Maintenance", {"description": "graffiti"}))

    for _ in range(3):
        run(service.vote(issue_id))

    assert run(service.get(issue_id)).votes == 3


def test_vote_on_unknown_id_raises_without_writing(run, backend, service):
    with pytest.raises(RecordNotFound):
        run(service.vote("1700000000000-zzzzzzz"))
    assert backend.writes == []


def test_get_unknown_id_raises(run, service):
    with pytest.raises(RecordNotFound):
        run(service.get("keys"))


def test_report_and_vote_scenario(run, service):
    run(service.submit("Facility", {"description": "older report"}))
    issue_id = run(service.submit("Safety", {"desc": "broken bench"}))
    run(service.vote(issue_id))
    run(service.vote(issue_id))

    newest = run(service.list_sorted())[0]

    assert newest.id == issue_id
    assert newest.category == "Safety"
    assert newest.votes == 2
    assert newest.status == "pending"


# ============================================================================
# PURE HELPERS
# ============================================================================


def test_aggregate_by_status_counts_every_status():
    issues = [_issue("1-a"), _issue("2-b", "approved"), _issue("3-c"), _issue("4-d", "rejected")]

    assert aggregate_by_status(issues) == StatusCounts(pending=2, approved=1, rejected=1)
    assert aggregate_by_status([]) == StatusCounts()


def test_filter_matches_category_and_ciphertext_case_insensitively():
    issues = [
        _issue("1-a", category="Safety"),
        _issue("2-b", category="Facility", data="FHE-SAFEdata"),
        _issue("3-c", category="Other"),
    ]

    assert [issue.id for issue in filter_issues(issues, "safe")] == ["1-a", "2-b"]
    assert [issue.id for issue in filter_issues(issues, "  ")] == ["1-a", "2-b", "3-c"]
    assert filter_issues(issues, "nothing") == []


def test_service_exposes_pure_helpers(service):
    assert service.aggregate_by_status([_issue("1-a")]) == StatusCounts(pending=1)
    assert service.filter([_issue("1-a", category="Safety")], "SAF")[0].id == "1-a"
