"""Tests for the error taxonomy."""

import copy
import pickle
from dataclasses import dataclass

import pytest

from huly_mcp import errors
from huly_mcp.errors import (
    FileTooLargeError,
    HulyAuthError,
    HulyConnectionError,
    HulyDomainError,
    HulyError,
    IssueNotFoundError,
    McpErrorCode,
    ProjectNotFoundError,
    error_code,
    is_domain_error,
    variant_kinds,
)

INTERNAL_KINDS = {
    "HulyError",
    "HulyConnectionError",
    "HulyAuthError",
    "FileUploadError",
    "FileFetchError",
}


class TestCodes:
    """Every variant maps to exactly one protocol code."""

    def test_every_kind_has_a_code(self):
        kinds = variant_kinds()
        assert len(kinds) == len(set(kinds))
        for kind in kinds:
            assert error_code(kind) in (McpErrorCode.INVALID_PARAMS, McpErrorCode.INTERNAL_ERROR)

    def test_internal_kinds(self):
        internal = {kind for kind in variant_kinds() if error_code(kind) == McpErrorCode.INTERNAL_ERROR}
        assert internal == INTERNAL_KINDS

    def test_not_found_kinds_are_invalid_params(self):
        for kind in variant_kinds():
            if kind.endswith("NotFoundError"):
                assert error_code(kind) == McpErrorCode.INVALID_PARAMS

    def test_unknown_kind(self):
        with pytest.raises(KeyError):
            error_code("NoSuchError")

    def test_codes_are_json_rpc_values(self):
        assert int(McpErrorCode.INVALID_PARAMS) == -32602
        assert int(McpErrorCode.INTERNAL_ERROR) == -32603

    def test_variant_without_code_is_rejected(self):
        with pytest.raises(TypeError, match="must declare an MCP error code"):

            @dataclass(eq=False)
            class UncodedError(HulyDomainError):
                reason: str

        assert "UncodedError" not in variant_kinds()

    def test_duplicate_kind_is_rejected(self):
        with pytest.raises(TypeError, match="Duplicate error kind"):

            class ProjectNotFoundError(HulyDomainError, code=McpErrorCode.INVALID_PARAMS):
                pass


class TestMessages:
    """Messages are derived from the variant's fields."""

    def test_issue_not_found(self):
        e = IssueNotFoundError(identifier="HULY-123", project="HULY")
        assert e.message == "Issue 'HULY-123' not found in project 'HULY'"
        assert str(e) == e.message

    def test_project_not_found(self):
        assert ProjectNotFoundError(identifier="NOPE").message == "Project 'NOPE' not found"

    def test_file_too_large_formats_megabytes(self):
        e = FileTooLargeError(filename="big.bin", size=150 * 1024 * 1024, max_size=100 * 1024 * 1024)
        assert e.message == "File 'big.bin' is too large (150.00 MB). Maximum allowed size is 100.00 MB"

    def test_file_too_large_rounds_to_two_places(self):
        e = FileTooLargeError(filename="a.png", size=1024 * 1024 + 5243, max_size=1024 * 1024)
        assert "(1.01 MB)" in e.message
        assert "1.00 MB" in e.message

    def test_free_text_variant(self):
        assert HulyConnectionError(reason="Connection refused").message == "Connection refused"

    def test_labels(self):
        assert HulyConnectionError.label == "Connection error"
        assert HulyAuthError.label == "Authentication error"
        assert HulyError.label is None


class TestValues:
    """Variants are immutable values."""

    def test_fields_cannot_be_reassigned(self):
        e = ProjectNotFoundError(identifier="HULY")
        with pytest.raises(AttributeError):
            e.identifier = "OTHER"
        assert e.identifier == "HULY"

    def test_can_be_raised_and_chained(self):
        with pytest.raises(HulyConnectionError) as info:
            try:
                raise OSError("boom")
            except OSError as inner:
                raise HulyConnectionError(reason="down") from inner
        assert isinstance(info.value.__cause__, OSError)
        assert info.value.__traceback__ is not None

    def test_field_values(self):
        e = IssueNotFoundError(identifier="7", project="HULY")
        assert e.field_values == {"identifier": "7", "project": "HULY"}

    def test_kind_is_class_name(self):
        assert IssueNotFoundError(identifier="1", project="P").kind == "IssueNotFoundError"

    def test_is_domain_error(self):
        assert is_domain_error(ProjectNotFoundError(identifier="X"))
        assert not is_domain_error(ValueError("X"))
        assert not is_domain_error(None)

    def test_file_not_found_does_not_replace_builtin(self):
        assert errors.FileNotFoundError is not FileNotFoundError
        assert not issubclass(errors.FileNotFoundError, OSError)
        assert errors.HulyFileNotFoundError is errors.FileNotFoundError
        assert errors.HulyFileNotFoundError(file_path="a.txt").kind == "FileNotFoundError"

    @pytest.mark.parametrize("clone", [copy.copy, copy.deepcopy, lambda e: pickle.loads(pickle.dumps(e))])
    def test_copy_and_pickle_keep_fields(self, clone):
        e = FileTooLargeError(filename="big.bin", size=5, max_size=4)
        restored = clone(e)
        assert type(restored) is FileTooLargeError
        assert restored.field_values == e.field_values
        assert restored.message == e.message

    def test_bare_base_renders_its_args(self):
        e = HulyDomainError("contract violation")
        assert e.message == "contract violation"
        assert not is_domain_error(e)
