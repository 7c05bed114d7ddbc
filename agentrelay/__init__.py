"""agentrelay: asynchronous execution engine for ordered agent pipelines."""

__version__ = "0.1.0"
