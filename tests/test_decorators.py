"""
Unit tests for decorators module.

Tests error mapping, execution logging and work item ID checks.
"""

import logging
import pytest
import requests
from unittest.mock import Mock
from azure.devops.exceptions import (
    AzureDevOpsAuthenticationError,
    AzureDevOpsClientRequestError,
    AzureDevOpsServiceError,
)
from ado_agents.decorators import (
    extract_status_code,
    handle_ado_error,
    log_execution,
    validate_work_item_id,
    azure_devops_operation
)
from ado_agents.errors import (
    AzureDevOpsError,
    AuthenticationError,
    BadRequestError,
    NotFoundError,
    PermissionDeniedError,
    RateLimitError,
    TransientError,
    WorkItemNotFoundError
)
from ado_agents.validation import ValidationError


def http_error(status_code, headers=None):
    response = Mock(status_code=status_code, headers=headers or {})
    return requests.HTTPError(f"{status_code} Error", response=response)


def service_error(message, type_key):
    wrapped = Mock(inner_exception=None, message=message, type_key=type_key)
    return AzureDevOpsServiceError(wrapped)


class TestExtractStatusCode:
    """Test extract_status_code."""

    def test_from_response(self):
        assert extract_status_code(http_error(404)) == 404

    def test_from_error_attribute(self):
        assert extract_status_code(TransientError(status_code=503)) == 503

    def test_no_response(self):
        assert extract_status_code(requests.ConnectionError("refused")) is None

    def test_plain_exception(self):
        assert extract_status_code(ValueError("bad")) is None


class TestExtractStatusCodeFromSdkErrors:
    """Test status codes inferred from Azure DevOps SDK exceptions."""

    def test_missing_work_item_code(self):
        error = service_error(
            "TF401232: Work item 5 does not exist, or you do not have permissions to read it.",
            "WorkItemUnauthorizedAccessException"
        )
        assert extract_status_code(error) == 404

    @pytest.mark.parametrize("type_key", [
        "GitPullRequestNotFoundException",
        "GitRepositoryNotFoundException",
        "ProjectDoesNotExistWithNameException",
    ])
    def test_not_found_type_keys(self, type_key):
        assert extract_status_code(service_error("Not there", type_key)) == 404

    def test_unauthorized_access(self):
        error = service_error("TF401027: You need the Git 'Read' permission.", "UnauthorizedAccessException")
        assert extract_status_code(error) == 403

    def test_authentication_error(self):
        error = AzureDevOpsAuthenticationError("The requested resource requires user authentication")
        assert extract_status_code(error) == 401

    def test_status_from_client_message(self):
        error = AzureDevOpsClientRequestError("Operation returned a 503 status code.")
        assert extract_status_code(error) == 503

    def test_unknown_service_error(self):
        assert extract_status_code(service_error("Something odd", "SomeOtherException")) is None


class TestHandleAdoError:
    """Test handle_ado_error decorator."""

    @pytest.mark.asyncio
    async def test_success_passthrough(self):
        @handle_ado_error
        async def ok():
            return "success"

        assert await ok() == "success"

    @pytest.mark.asyncio
    async def test_404_with_work_item_id(self):
        @handle_ado_error
        async def get_work_item(work_item_id):
            raise http_error(404)

        with pytest.raises(WorkItemNotFoundError) as exc_info:
            await get_work_item(work_item_id=42)

        assert exc_info.value.work_item_id == 42
        assert isinstance(exc_info.value.original_error, requests.HTTPError)

    @pytest.mark.asyncio
    async def test_404_without_work_item_id(self):
        @handle_ado_error
        async def get_pull_request(pull_request_id):
            raise http_error(404)

        with pytest.raises(NotFoundError) as exc_info:
            await get_pull_request(7)

        assert not isinstance(exc_info.value, WorkItemNotFoundError)

    @pytest.mark.asyncio
    async def test_401(self):
        @handle_ado_error
        async def call():
            raise http_error(401)

        with pytest.raises(AuthenticationError):
            await call()

    @pytest.mark.asyncio
    async def test_429_reads_retry_after(self):
        @handle_ado_error
        async def call():
            raise http_error(429, headers={'Retry-After': "17"})

        with pytest.raises(RateLimitError) as exc_info:
            await call()

        assert exc_info.value.retry_after == 17

    @pytest.mark.asyncio
    async def test_429_http_date_retry_after(self):
        @handle_ado_error
        async def call():
            raise http_error(429, headers={'Retry-After': "Wed, 21 Oct 2026 07:28:00 GMT"})

        with pytest.raises(RateLimitError) as exc_info:
            await call()

        assert exc_info.value.retry_after == 60

    @pytest.mark.asyncio
    async def test_5xx_not_retried(self):
        calls = 0

        @handle_ado_error
        async def call():
            nonlocal calls
            calls += 1
            raise http_error(503)

        with pytest.raises(TransientError):
            await call()

        assert calls == 1

    @pytest.mark.asyncio
    async def test_sdk_missing_work_item(self):
        @handle_ado_error
        async def get_work_item(work_item_id):
            raise service_error("TF401232: Work item 42 does not exist.", "WorkItemUnauthorizedAccessException")

        with pytest.raises(WorkItemNotFoundError) as exc_info:
            await get_work_item(work_item_id=42)

        assert isinstance(exc_info.value.original_error, AzureDevOpsServiceError)

    @pytest.mark.asyncio
    async def test_sdk_permission_denied(self):
        @handle_ado_error
        async def call():
            raise service_error("TF401027: You need the Git 'Read' permission.", "UnauthorizedAccessException")

        with pytest.raises(PermissionDeniedError):
            await call()

    @pytest.mark.asyncio
    async def test_sdk_authentication_error(self):
        @handle_ado_error
        async def call():
            raise AzureDevOpsAuthenticationError("The requested resource requires user authentication")

        with pytest.raises(AuthenticationError):
            await call()

    @pytest.mark.asyncio
    async def test_custom_errors_reraised_unchanged(self):
        original = BadRequestError(message="nope")

        @handle_ado_error
        async def call():
            raise original

        with pytest.raises(BadRequestError) as exc_info:
            await call()

        assert exc_info.value is original

    @pytest.mark.asyncio
    async def test_validation_error_reraised_unchanged(self):
        @handle_ado_error
        async def call():
            raise ValidationError("top", "bad top")

        with pytest.raises(ValidationError) as exc_info:
            await call()

        assert exc_info.value.field == "top"

    @pytest.mark.asyncio
    async def test_unexpected_error_wrapped(self):
        @handle_ado_error
        async def call():
            raise KeyError("repository")

        with pytest.raises(AzureDevOpsError) as exc_info:
            await call()

        assert exc_info.value.status_code is None
        assert "Unexpected error in call" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, KeyError)


class TestLogExecution:
    """Test log_execution decorator."""

    @pytest.mark.asyncio
    async def test_logs_call_and_completion(self, caplog):
        @log_execution(level=logging.INFO)
        async def fetch():
            return 1

        with caplog.at_level(logging.INFO, logger="ado_agents.decorators"):
            await fetch()

        assert "Calling fetch" in caplog.text
        assert "fetch completed successfully" in caplog.text

    @pytest.mark.asyncio
    async def test_logs_failure_and_reraises(self, caplog):
        @log_execution(level=logging.INFO)
        async def fetch():
            raise ValueError("bad")

        with caplog.at_level(logging.INFO, logger="ado_agents.decorators"):
            with pytest.raises(ValueError):
                await fetch()

        assert "fetch failed with error: bad" in caplog.text


class TestValidateWorkItemId:
    """Test validate_work_item_id decorator."""

    class Service:
        @validate_work_item_id
        async def get(self, work_item_id):
            return work_item_id

    @pytest.mark.asyncio
    async def test_valid_positional(self):
        assert await self.Service().get(5) == 5

    @pytest.mark.asyncio
    async def test_valid_keyword(self):
        assert await self.Service().get(work_item_id=5) == 5

    @pytest.mark.asyncio
    @pytest.mark.parametrize("value", [0, -3, "5", 1.5, True])
    async def test_invalid(self, value):
        with pytest.raises(BadRequestError):
            await self.Service().get(value)


class TestAzureDevOpsOperation:
    """Test the combined decorator."""

    @pytest.mark.asyncio
    async def test_maps_errors(self):
        @azure_devops_operation()
        async def call(work_item_id):
            raise http_error(404)

        with pytest.raises(WorkItemNotFoundError):
            await call(work_item_id=9)

    @pytest.mark.asyncio
    async def test_preserves_name(self):
        @azure_devops_operation()
        async def run_saved_query():
            return []

        assert run_saved_query.__name__ == "run_saved_query"
        assert await run_saved_query() == []
