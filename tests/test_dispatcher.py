"""Tests for the push event dispatcher."""

import json

import pytest

from dispatcher import Dispatcher, branch_matches, parse_push_event
from exceptions import ClientPayloadError
from executor import ExecutionResult
from models.repository_config import RepositoryConfig
from utils import compute_signature


def _body(ref="refs/heads/main", full_name="org/repo") -> bytes:
    payload = {"repository": {"full_name": full_name}}
    if ref is not None:
        payload["ref"] = ref
    return json.dumps(payload).encode()


@pytest.mark.unit
class TestParsePushEvent:
    def test_parses_ref_and_repository(self) -> None:
        event = parse_push_event(_body())
        assert event.ref == "refs/heads/main"
        assert event.repository_full_name == "org/repo"

    def test_extra_keys_are_ignored(self) -> None:
        body = b'{"ref": "refs/heads/x", "repository": {"full_name": "a/b", "id": 1}, "pusher": {}}'
        event = parse_push_event(body)
        assert event.repository_full_name == "a/b"

    def test_missing_fields_default_to_empty(self) -> None:
        event = parse_push_event(b"{}")
        assert event.ref == ""
        assert event.repository_full_name == ""

    @pytest.mark.parametrize("body", [
        b'{"ref": null, "repository": {"full_name": null, "name": null}}',
        b'{"ref": null, "repository": null}',
    ])
    def test_null_fields_read_as_empty(self, body: bytes) -> None:
        event = parse_push_event(body)
        assert event.ref == ""
        assert event.repository_full_name == ""

    @pytest.mark.parametrize("body", [b"", b"not json", b"{", b"\xff\xfe"])
    def test_malformed_json(self, body: bytes) -> None:
        with pytest.raises(ClientPayloadError) as exc_info:
            parse_push_event(body)
        assert exc_info.value.status_code == 400
        assert "Invalid JSON payload" in exc_info.value.message

    def test_non_object_json(self) -> None:
        with pytest.raises(ClientPayloadError):
            parse_push_event(b"[1, 2, 3]")

    def test_wrong_field_types(self) -> None:
        with pytest.raises(ClientPayloadError) as exc_info:
            parse_push_event(b'{"ref": "refs/heads/main", "repository": "org/repo"}')
        assert "Invalid payload" in exc_info.value.message


@pytest.mark.unit
class TestBranchMatches:
    def test_configured_branch(self, repository: RepositoryConfig) -> None:
        assert branch_matches(repository, "refs/heads/main") is True
        assert branch_matches(repository, "refs/heads/dev") is False

    def test_suffix_must_follow_a_slash(self, repository: RepositoryConfig) -> None:
        assert branch_matches(repository, "refs/heads/domain") is False

    def test_empty_ref_passes(self, repository: RepositoryConfig) -> None:
        assert branch_matches(repository, "") is True

    def test_no_configured_branch(self, repository: RepositoryConfig) -> None:
        unfiltered = repository.model_copy(update={"branch": ""})
        assert branch_matches(unfiltered, "refs/heads/anything") is True


@pytest.mark.unit
class TestDispatcher:
    def test_unknown_repository_is_ignored_without_authentication(self, repository, recording_executor) -> None:
        dispatcher = Dispatcher([repository], recording_executor)
        result = dispatcher.dispatch(_body(full_name="other/repo"), None)
        assert result.status_code == 200
        assert result.message == "Ignored push to repository: other/repo"
        assert recording_executor.calls == []

    def test_malformed_payload(self, repository, recording_executor) -> None:
        dispatcher = Dispatcher([repository], recording_executor)
        result = dispatcher.dispatch(b"{oops", compute_signature(b"{oops", "abc"))
        assert result.status_code == 400
        assert result.message.startswith("Invalid JSON payload:")
        assert recording_executor.calls == []

    def test_invalid_signature(self, repository, recording_executor) -> None:
        body = _body()
        dispatcher = Dispatcher([repository], recording_executor)
        result = dispatcher.dispatch(body, compute_signature(body, "wrong"))
        assert result.status_code == 401
        assert result.message == "Invalid signature"
        assert recording_executor.calls == []

    def test_missing_signature(self, repository, recording_executor) -> None:
        dispatcher = Dispatcher([repository], recording_executor)
        result = dispatcher.dispatch(_body(), None)
        assert result.status_code == 401
        assert recording_executor.calls == []

    def test_branch_mismatch_is_ignored(self, repository, recording_executor) -> None:
        body = _body(ref="refs/heads/dev")
        dispatcher = Dispatcher([repository], recording_executor)
        result = dispatcher.dispatch(body, compute_signature(body, "abc"))
        assert result.status_code == 200
        assert result.message == "Ignored push to branch: refs/heads/dev"
        assert recording_executor.calls == []

    def test_signature_checked_before_branch(self, repository, recording_executor) -> None:
        body = _body(ref="refs/heads/dev")
        dispatcher = Dispatcher([repository], recording_executor)
        result = dispatcher.dispatch(body, compute_signature(body, "wrong"))
        assert result.status_code == 401

    @pytest.mark.parametrize("ref", ["refs/heads/main", "refs/heads/dev", "refs/tags/v1.0", "", None])
    def test_no_configured_branch_always_executes(self, repository, recording_executor, ref) -> None:
        unfiltered = repository.model_copy(update={"branch": ""})
        body = _body(ref=ref)
        dispatcher = Dispatcher([unfiltered], recording_executor)
        result = dispatcher.dispatch(body, compute_signature(body, "abc"))
        assert result.status_code == 200
        assert len(recording_executor.calls) == 1

    def test_empty_ref_executes_even_with_branch(self, repository, recording_executor) -> None:
        body = _body(ref="")
        dispatcher = Dispatcher([repository], recording_executor)
        result = dispatcher.dispatch(body, compute_signature(body, "abc"))
        assert result.status_code == 200
        assert len(recording_executor.calls) == 1

    def test_null_ref_executes_like_empty_ref(self, repository, recording_executor) -> None:
        body = b'{"ref": null, "repository": {"full_name": "org/repo"}}'
        dispatcher = Dispatcher([repository], recording_executor)
        result = dispatcher.dispatch(body, compute_signature(body, "abc"))
        assert result.status_code == 200
        assert len(recording_executor.calls) == 1

    def test_success_passes_script_settings(self, recording_executor) -> None:
        repository = RepositoryConfig(
            full_name="org/repo",
            secret="abc",
            script_path="./deploy.sh",
            timeout=30,
            working_dir="/srv/app",
        )
        body = _body()
        dispatcher = Dispatcher([repository], recording_executor)
        result = dispatcher.dispatch(body, compute_signature(body, "abc"))
        assert result.status_code == 200
        assert result.message == "Deployment script executed for org/repo"
        assert recording_executor.calls == [{"script_path": "./deploy.sh", "timeout": 30, "cwd": "/srv/app"}]

    def test_first_match_wins(self, make_executor) -> None:
        executor = make_executor()
        first = RepositoryConfig(full_name="org/repo", secret="first", script_path="./first.sh")
        second = RepositoryConfig(full_name="org/repo", secret="second", script_path="./second.sh")
        dispatcher = Dispatcher([first, second], executor)
        body = _body()

        assert dispatcher.find_repository("org/repo") is first
        assert dispatcher.dispatch(body, compute_signature(body, "second")).status_code == 401
        assert dispatcher.dispatch(body, compute_signature(body, "first")).status_code == 200
        assert [call["script_path"] for call in executor.calls] == ["./first.sh"]

    def test_execution_failure_reports_output(self, repository, make_executor) -> None:
        executor = make_executor(ExecutionResult(exit_ok=False, stdout="pulling", stderr="boom", returncode=2))
        body = _body()
        dispatcher = Dispatcher([repository], executor)
        result = dispatcher.dispatch(body, compute_signature(body, "abc"))
        assert result.status_code == 500
        assert "Error executing shell script (failed)" in result.message
        assert "pulling" in result.message
        assert "boom" in result.message

    def test_execution_timeout(self, repository, make_executor) -> None:
        executor = make_executor(ExecutionResult(exit_ok=False, timed_out=True))
        body = _body()
        dispatcher = Dispatcher([repository], executor)
        result = dispatcher.dispatch(body, compute_signature(body, "abc"))
        assert result.status_code == 500
        assert "timed out" in result.message

    def test_ping_does_not_execute(self, repository, recording_executor) -> None:
        body = json.dumps({"zen": "Keep it simple.", "repository": {"full_name": "org/repo"}}).encode()
        dispatcher = Dispatcher([repository], recording_executor)
        result = dispatcher.dispatch(body, compute_signature(body, "abc"), event="ping")
        assert result.status_code == 200
        assert result.message == "Ping successful"
        assert recording_executor.calls == []

    def test_ping_still_requires_signature(self, repository, recording_executor) -> None:
        body = json.dumps({"zen": "Keep it simple.", "repository": {"full_name": "org/repo"}}).encode()
        dispatcher = Dispatcher([repository], recording_executor)
        result = dispatcher.dispatch(body, "sha256=00", event="ping")
        assert result.status_code == 401

    def test_no_repositories(self, recording_executor) -> None:
        dispatcher = Dispatcher([], recording_executor)
        result = dispatcher.dispatch(_body(), None)
        assert result.status_code == 200
        assert recording_executor.calls == []
