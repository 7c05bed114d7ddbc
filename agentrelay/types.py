"""Common type definitions for agentrelay.

This module provides type aliases for commonly used types across the application,
improving type safety and reducing repetition.
"""

from typing import Any

# Pipeline-related types
type AgentConfig = dict[str, Any]
type RunResult = dict[str, Any]

# API response types
type StatusResponse = dict[str, Any]
