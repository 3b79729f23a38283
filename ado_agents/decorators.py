"""
Decorators for error handling, logging and argument checks.

Maps exceptions raised by the Azure DevOps SDK clients and the plain
requests lookups onto the error classes in errors.py so every tool reports
failures the same way. Calls are never retried.
"""

import logging
import re
from functools import wraps
from typing import Callable, TypeVar, Optional

from azure.devops.exceptions import (
    AzureDevOpsAuthenticationError,
    AzureDevOpsClientRequestError,
    AzureDevOpsServiceError,
)

from .errors import (
    AzureDevOpsError,
    BadRequestError,
    map_status_code_to_error,
)
from .validation import ValidationError

# Type variable for generic function signatures
T = TypeVar('T')

logger = logging.getLogger(__name__)


# SDK errors carry no status code; the client writes it into the message
STATUS_IN_MESSAGE = re.compile(r'returned an? (\d{3}) status code')

# typeKey suffixes of service errors for missing resources
NOT_FOUND_TYPE_KEYS = ('NotFoundException', 'DoesNotExistException', 'DoesNotExistWithNameException')

# Missing work item, pull request and repository. A missing work item comes
# back as WorkItemUnauthorizedAccessException, so the code is checked first.
NOT_FOUND_ERROR_CODES = ('TF401232', 'TF401180', 'TF401019')


def _service_error_status(error: Exception) -> Optional[int]:
    if isinstance(error, AzureDevOpsAuthenticationError):
        return 401

    if isinstance(error, AzureDevOpsServiceError):
        message = getattr(error, 'message', None) or ''
        if message.startswith(NOT_FOUND_ERROR_CODES):
            return 404
        type_key = getattr(error, 'type_key', None) or ''
        if type_key.endswith(NOT_FOUND_TYPE_KEYS):
            return 404
        if type_key.endswith('UnauthorizedAccessException'):
            return 403

    match = STATUS_IN_MESSAGE.search(str(error))
    return int(match.group(1)) if match else None


def extract_status_code(error: Exception) -> Optional[int]:
    """
    Best-effort HTTP status code of an SDK or requests exception.

    Looks at the exception itself, then at its response object. SDK
    client errors are mapped from their typeKey or message.
    """
    if isinstance(error, (AzureDevOpsAuthenticationError, AzureDevOpsClientRequestError)):
        return _service_error_status(error)

    status_code = getattr(error, 'status_code', None)

    if not status_code and hasattr(error, 'response'):
        response = getattr(error, 'response', None)
        if response is not None:
            status_code = getattr(response, 'status_code', None)

    return status_code if isinstance(status_code, int) else None


def _retry_after_seconds(error: Exception) -> Optional[int]:
    response = getattr(error, 'response', None)
    headers = getattr(response, 'headers', None) if response is not None else None
    if not headers:
        return None

    retry_after_header = headers.get('Retry-After') or headers.get('retry-after')
    if not retry_after_header:
        return None
    try:
        return int(retry_after_header)
    except (ValueError, TypeError):
        # HTTP-date form
        logger.warning(f"Could not parse Retry-After header: {retry_after_header}")
        return 60


def handle_ado_error(func: Callable[..., T]) -> Callable[..., T]:
    """
    Decorator to handle Azure DevOps API errors with helpful messages.

    Maps SDK and requests exceptions to custom error classes with
    user-friendly messages. A 404 raised while a ``work_item_id`` keyword
    argument is in scope becomes a WorkItemNotFoundError.

    Args:
        func: The async function to wrap

    Returns:
        Wrapped function with error handling

    Example:
        @handle_ado_error
        async def get_pull_request(self, repository_id, pull_request_id):
            return self.git_client.get_pull_request(repository_id, pull_request_id)
    """
    @wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except (AzureDevOpsError, ValidationError):
            # Already a custom error, re-raise as-is
            raise
        except Exception as e:
            status_code = extract_status_code(e)

            if status_code:
                error = map_status_code_to_error(
                    status_code,
                    original_error=e,
                    retry_after=_retry_after_seconds(e) if status_code == 429 else None,
                    work_item_id=kwargs.get('work_item_id')
                )
                logger.error(
                    f"Azure DevOps API error in {func.__name__}: {error}",
                    exc_info=True
                )
                raise error from e

            logger.error(
                f"Unexpected error in {func.__name__}: {str(e)}",
                exc_info=True
            )
            raise AzureDevOpsError(
                message=f"Unexpected error in {func.__name__}: {str(e)}",
                original_error=e
            ) from e

    return wrapper


def log_execution(
    level: int = logging.DEBUG,
    log_args: bool = False
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Decorator to log function execution.

    Args:
        level: Logging level (default: DEBUG)
        log_args: Whether to log function arguments (default: False)

    Returns:
        Decorator function
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        async def wrapper(*args, **kwargs):
            func_name = func.__name__

            if log_args:
                # Skip 'self'
                logger.log(level, f"Calling {func_name} with args={args[1:]}, kwargs={kwargs}")
            else:
                logger.log(level, f"Calling {func_name}")

            try:
                result = await func(*args, **kwargs)
                logger.log(level, f"{func_name} completed successfully")
                return result
            except Exception as e:
                logger.log(level, f"{func_name} failed with error: {e}")
                raise

        return wrapper
    return decorator


def validate_work_item_id(func: Callable[..., T]) -> Callable[..., T]:
    """
    Decorator to validate work item ID parameter.

    Ensures work_item_id is a positive integer. The ID is read from the
    ``work_item_id`` keyword or from the first positional argument after
    ``self``.
    """
    @wraps(func)
    async def wrapper(*args, **kwargs):
        work_item_id = kwargs.get('work_item_id')

        if work_item_id is None and len(args) > 1:
            work_item_id = args[1]

        if work_item_id is not None:
            if isinstance(work_item_id, bool) or not isinstance(work_item_id, int) or work_item_id <= 0:
                raise BadRequestError(
                    message=f"Invalid work item ID: {work_item_id}. Must be a positive integer."
                )

        return await func(*args, **kwargs)

    return wrapper


def azure_devops_operation(
    log_level: int = logging.DEBUG
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Convenience decorator combining execution logging and error handling.

    Applies decorators in the correct order:
    1. Execution logging (outermost)
    2. Error handling (innermost)

    Example:
        @azure_devops_operation()
        async def get_threads(self, repository_id, pull_request_id):
            return self.git_client.get_threads(repository_id, pull_request_id)
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        decorated = handle_ado_error(func)
        decorated = log_execution(level=log_level)(decorated)
        return decorated

    return decorator
