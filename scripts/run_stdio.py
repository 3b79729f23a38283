#!/usr/bin/env python3
"""
Run the agent tools MCP server in STDIO mode for desktop clients
Uses AZURE_DEVOPS_PAT, a service principal or your local Azure login (az login)
"""
import sys
import os

# Add the project root to Python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from ado_agents.server import mcp

if __name__ == "__main__":
    # Run with stdio transport (default for MCP)
    mcp.run()
