"""
Azure DevOps Agent Tools MCP Server
Read-only tools that give an agent the full context of a work item: its
discussion, linked pull request conversations, inline images and
descendant hierarchy
"""
from fastmcp import FastMCP, Context
from typing import Optional, List, Dict, Any
import logging
import os
from datetime import datetime, timezone
from contextlib import asynccontextmanager
from dotenv import load_dotenv
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse

from .auth import AzureDevOpsAuth
from .constants import HierarchyLimits, QueryLimits
from .errors import AzureDevOpsError
from .log_sanitizer import configure_logging
from .service_manager import ServiceManager
from .validation import ValidationError

logger = logging.getLogger(__name__)


# Global state for authentication and service manager
# Initialized during lifespan startup
_auth = None
_service_manager = None


@asynccontextmanager
async def lifespan(app):
    """Initialize services on startup"""
    global _auth, _service_manager

    # Load environment variables from .env file
    load_dotenv()
    configure_logging()

    org_url = os.getenv("AZURE_DEVOPS_ORG_URL")
    default_project = os.getenv("AZURE_DEVOPS_PROJECT")  # Optional default

    if not org_url:
        raise ValueError(
            "Missing required environment variable: AZURE_DEVOPS_ORG_URL"
        )

    _auth = AzureDevOpsAuth(org_url)
    await _auth.initialize()

    _service_manager = ServiceManager(_auth, default_project=default_project)
    logger.info(f"Server ready for {_auth.organization_url} (default project: {default_project})")

    yield  # Server runs

    # Cleanup on shutdown
    await _auth.close()


mcp = FastMCP(
    name="Azure DevOps Agent Tools",
    lifespan=lifespan
)


# ============================================================================
# TOOLS
# ============================================================================

@mcp.tool()
async def work_item_deep_dive(
    work_item_id: int,
    project: Optional[str] = None,
    ctx: Context = None
) -> Dict[str, Any]:
    """
    Get everything about one work item in a single call.

    Returns the work item fields, its discussion, every pull request it
    references (with human review threads, bot and system noise removed)
    and the images embedded in its HTML fields and comments as base64.

    Args:
        work_item_id: ID of the work item
        project: Azure DevOps project name. If None, uses default project.

    Returns:
        Dictionary with 'work_item', 'discussion', 'pull_requests' and
        'inline_images'; {'error': ...} if the work item does not exist.
        A pull request or image that could not be fetched appears with an
        'error' key instead of its details.
    """
    service = _service_manager.get_deep_dive_service(project)
    await ctx.info(f"Collecting context for work item {work_item_id} in project: {service.project}...")

    result = await service.work_item_deep_dive(work_item_id)

    if 'error' in result:
        await ctx.info(result['error'])
    else:
        await ctx.info(
            f"Found {len(result['discussion'])} comments, "
            f"{len(result['pull_requests'])} pull requests and "
            f"{len(result['inline_images'])} inline images"
        )
    return result


@mcp.tool()
async def get_work_item_tree(
    work_item_id: int,
    max_depth: int = HierarchyLimits.DEFAULT_MAX_DEPTH,
    max_items: int = HierarchyLimits.DEFAULT_MAX_ITEMS,
    project: Optional[str] = None,
    ctx: Context = None
) -> Dict[str, Any]:
    """
    Get a work item and all of its descendants (children, grandchildren, ...).

    Args:
        work_item_id: Root work item ID (e.g. an Epic or Feature)
        max_depth: Levels below the root to include, 0-20 (default 5).
                   0 returns the root alone.
        max_items: Maximum number of work items to return, 1-2000 (default 500)
        project: Azure DevOps project name. If None, uses default project.

    Returns:
        Dictionary with the nested 'tree', a flat 'items' list and
        'returned'. When 'returned' equals 'max_items' the tree was cut off.
    """
    service = _service_manager.get_hierarchy_service(project)
    await ctx.info(
        f"Traversing descendants of work item {work_item_id} "
        f"(max_depth={max_depth}, max_items={max_items}) in project: {service.project}..."
    )

    result = await service.get_descendant_tree(
        work_item_id,
        max_depth=max_depth,
        max_items=max_items
    )

    await ctx.info(f"Returned {result['returned']} work items")
    return result


@mcp.tool()
async def get_pull_request_conversation(
    pull_request_id: int,
    project: Optional[str] = None,
    repository_id: Optional[str] = None,
    ctx: Context = None
) -> Dict[str, Any]:
    """
    Get a pull request and its human review threads.

    Args:
        pull_request_id: Pull request ID
        project: Azure DevOps project name. If None, uses default project.
        repository_id: Repository ID or name. Looked up from the pull
                       request when omitted.

    Returns:
        Pull request details with 'comment_threads'
    """
    service = _service_manager.get_deep_dive_service(project)
    await ctx.info(f"Fetching pull request {pull_request_id} in project: {service.project}...")

    result = await service.get_pull_request_conversation(
        pull_request_id,
        repository_id=repository_id
    )

    await ctx.info(f"Pull request has {len(result['comment_threads'])} conversation threads")
    return result


@mcp.tool()
async def run_saved_query(
    query_id: str,
    project: Optional[str] = None,
    top: int = QueryLimits.DEFAULT_LIMIT,
    ctx: Context = None
) -> List[Dict[str, Any]]:
    """
    Run a saved work item query.

    Args:
        query_id: Saved query GUID (from the query's URL)
        project: Azure DevOps project name. If None, uses default project.
        top: Maximum number of work items to return (default 200)

    Returns:
        List of work item summaries in query order
    """
    service = _service_manager.get_query_service(project)
    await ctx.info(f"Running saved query {query_id} in project: {service.project}...")

    items = await service.run_saved_query(query_id, top=top)

    await ctx.info(f"Query returned {len(items)} work items")
    return items


# ============================================================================
# MONITORING TOOLS
# ============================================================================

@mcp.tool()
async def get_service_statistics(ctx: Context = None) -> Dict[str, Any]:
    """
    Get authentication and service manager statistics.

    Returns:
        Dictionary with auth info, loaded projects and service counts
    """
    if not _service_manager:
        return {"error": "Service manager not initialized"}

    return {
        "auth": _auth.get_auth_info(),
        "service_manager": _service_manager.get_statistics(),
        "loaded_projects": _service_manager.get_loaded_projects(),
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


# ============================================================================
# HTTP ROUTES
# ============================================================================

@mcp.custom_route("/health", methods=["GET"])
async def health(request: Request) -> PlainTextResponse:
    """Liveness check"""
    return PlainTextResponse("ok")


@mcp.custom_route("/deep-dive/{work_item_id}", methods=["GET"])
async def deep_dive_route(request: Request) -> JSONResponse:
    """Deep dive over plain HTTP, for the default project"""
    raw_id = request.path_params.get("work_item_id", "")
    if not raw_id.isdigit() or int(raw_id) <= 0:
        return JSONResponse(
            {"error": f"Invalid work item ID: {raw_id}. Must be a positive integer."},
            status_code=400
        )

    try:
        service = _service_manager.get_deep_dive_service()
        result = await service.work_item_deep_dive(int(raw_id))
    except ValidationError as e:
        return JSONResponse(e.to_dict(), status_code=400)
    except AzureDevOpsError as e:
        return JSONResponse(e.to_dict(), status_code=e.status_code or 500)

    return JSONResponse(result)


# Entry point for running the server
if __name__ == "__main__":
    transport_mode = os.getenv("MCP_TRANSPORT", "http").lower()

    if transport_mode == "stdio":
        # STDIO mode for desktop clients; stdout carries JSON-RPC
        mcp.run()
    else:
        port = int(os.getenv("PORT", 8000))

        print(f"Starting MCP server with HTTP streaming on port {port}")
        print(f"Server URL: http://localhost:{port}/mcp")
        print(f"Health check: http://localhost:{port}/health")

        mcp.run(transport="streamable-http", port=port, host="0.0.0.0")
