# ============================================================================
# CORE MODEL TESTS
# ============================================================================
# EPOCH: 1 - SERVICE DISPATCH
# STATUS: Tests - Command, ResponseCollection, errors and canonical names
# PURPOSE: Verify the value objects every other layer builds on
# CREATED: 19 OCT 2026
# ============================================================================
"""
Core Model Tests

Covers:
1. Canonical service/operation names and their patterns
2. ServiceError message templates and codes
3. Command params, identity flattening and locking
4. ResponseCollection accessors
5. DispatchState terminal states

Run with:
    pytest tests/test_core_models.py -v
"""

import pytest
from pydantic import BaseModel

from core.contracts import (
    CommandContext,
    DispatchState,
    canonical_operation_name,
    canonical_service_name,
    context_value,
    event_name,
    is_valid_operation_name,
    is_valid_service_id,
    is_valid_service_name,
)
from core.errors import (
    CommandLockedError,
    ConfigurationError,
    NotFoundError,
    OperationNotFoundError,
    PermissionDeniedError,
    ServiceError,
    ServiceNotFoundError,
)
from core.models.command import Command, flatten_identity, normalize_params
from core.models.responses import ResponseCollection


# ============================================================================
# CANONICAL NAMES
# ============================================================================

class TestCanonicalNames:

    @pytest.mark.parametrize("raw,expected", [
        ("valu.test", "Valu.Test"),
        ("filesystem.file", "Filesystem.File"),
        ("user-admin.role", "UserAdmin.Role"),
        ("Valu.Test", "Valu.Test"),
    ])
    def test_service_name(self, raw, expected):
        assert canonical_service_name(raw) == expected

    @pytest.mark.parametrize("raw,expected", [
        ("find-by", "findBy"),
        ("http-GET", "httpGet"),
        ("run", "run"),
        ("findBy", "findBy"),
    ])
    def test_operation_name(self, raw, expected):
        assert canonical_operation_name(raw) == expected

    def test_service_name_pattern(self):
        assert is_valid_service_name("Valu.Test")
        assert is_valid_service_name("Filesystem.File")
        assert not is_valid_service_name("")
        assert not is_valid_service_name(None)
        assert not is_valid_service_name("1service")
        assert not is_valid_service_name("Valu..Test")
        assert not is_valid_service_name("Valu Test")

    def test_operation_name_pattern(self):
        assert is_valid_operation_name("findBy")
        assert not is_valid_operation_name("find.by")
        assert not is_valid_operation_name("")

    def test_service_id_pattern(self):
        assert is_valid_service_id("fs.local")
        assert is_valid_service_id("myapp.files:LocalFileService")
        assert is_valid_service_id("_private")
        assert not is_valid_service_id("")
        assert not is_valid_service_id("has space")

    def test_event_name_is_lowercase(self):
        assert event_name("init", "Valu.Test", "findBy") == "init.valu.test.findby"

    def test_context_value(self):
        assert context_value(CommandContext.HTTP_GET) == "http-get"
        assert context_value("custom") == "custom"
        assert context_value(None) is None


# ============================================================================
# ERRORS
# ============================================================================

class TestServiceError:

    def test_message_substitution(self):
        error = ServiceNotFoundError("Service %SERVICE% not found", {"SERVICE": "Valu.Test"})
        assert error.message == "Service Valu.Test not found"
        assert str(error) == "Service Valu.Test not found"
        assert error.raw_message == "Service %SERVICE% not found"
        assert error.vars == {"SERVICE": "Valu.Test"}

    def test_default_codes(self):
        assert ServiceError("x").code == 1
        assert ServiceNotFoundError("x").code == 4
        assert OperationNotFoundError("x").code == 5
        assert PermissionDeniedError("x").code == 6
        assert ConfigurationError("x").code == 7
        assert CommandLockedError("x").code == 8

    def test_explicit_code(self):
        assert ServiceError("x", code=42).code == 42

    def test_hierarchy(self):
        assert issubclass(ServiceNotFoundError, NotFoundError)
        assert issubclass(OperationNotFoundError, NotFoundError)
        assert issubclass(NotFoundError, ServiceError)


# ============================================================================
# COMMAND
# ============================================================================

class Identity(BaseModel):
    username: str
    roles: list = []


class TestCommand:

    def test_positional_params_become_index_keys(self):
        command = Command("Valu.Test", "run", ["a", "b"])
        assert command.params == {0: "a", 1: "b"}
        assert command.positional_params() == ["a", "b"]
        assert command.named_params() == {}

    def test_mixed_params(self):
        command = Command("Valu.Test", "run", {1: "b", 0: "a", "level": 3})
        assert command.positional_params() == ["a", "b"]
        assert command.named_params() == {"level": 3}

    def test_invalid_params(self):
        with pytest.raises(TypeError):
            normalize_params("not-params")

    def test_param_access(self):
        command = Command("Valu.Test", "run")
        assert command.params == {}
        command.set_param("level", "none")
        command.update_params({"extra": 1})
        assert command.get_param("level") == "none"
        assert command.has_param("extra")
        assert command.get_param("missing", "default") == "default"

    def test_context_accepts_enum(self):
        command = Command("Valu.Test", "run", context=CommandContext.CLI)
        assert command.context == "cli"

    def test_lock_freezes_service_and_operation(self):
        command = Command("Valu.Test", "run")
        command.service = "Valu.Other"
        command.lock()

        with pytest.raises(CommandLockedError):
            command.service = "Valu.Test"
        with pytest.raises(CommandLockedError):
            command.operation = "other"

        # Params and context stay mutable
        command.set_param("x", 1)
        command.context = "http"
        assert command.service == "Valu.Other"

    def test_initial_state(self):
        assert Command("Valu.Test", "run").state == DispatchState.BUILT

    def test_to_dict_flattens_identity(self):
        command = Command(
            "Valu.Test", "run", {"a": 1}, context="native",
            identity=Identity(username="alice"),
        )
        assert command.to_dict() == {
            "context": "native",
            "service": "Valu.Test",
            "operation": "run",
            "params": {"a": 1},
            "identity": {"username": "alice", "roles": []},
        }

    def test_flatten_identity_sources(self):
        class Legacy:
            def to_dict(self):
                return {"username": "bob"}

        assert flatten_identity(None) == {}
        assert flatten_identity({"a": 1}) == {"a": 1}
        assert flatten_identity(Legacy()) == {"username": "bob"}
        with pytest.raises(TypeError):
            flatten_identity(42)


# ============================================================================
# RESPONSES
# ============================================================================

class TestResponseCollection:

    def test_empty(self):
        responses = ResponseCollection()
        assert responses.first() is None
        assert responses.last() is None
        assert responses.is_empty()
        assert not responses.stopped
        assert len(responses) == 0

    def test_order_and_accessors(self):
        responses = ResponseCollection()
        for value in ("a", None, "c"):
            responses.push(value)

        assert responses.first() == "a"
        assert responses.last() == "c"
        assert responses.count() == 3
        assert responses.contains(None)
        assert responses.to_list() == ["a", None, "c"]
        assert list(responses) == ["a", None, "c"]
        assert responses[1] is None

    def test_stopped_flag(self):
        responses = ResponseCollection(["a"], stopped=True)
        assert responses.stopped
        responses.set_stopped(False)
        assert not responses.stopped


class TestDispatchState:

    def test_terminal_states(self):
        assert DispatchState.FINALIZED.is_terminal()
        assert DispatchState.ABORTED.is_terminal()
        assert DispatchState.FAILED.is_terminal()
        assert not DispatchState.BUILT.is_terminal()
        assert not DispatchState.EXECUTING.is_terminal()
