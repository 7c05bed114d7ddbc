"""
Agent contract and registry.

An agent is an opaque unit of work with two capabilities: ``execute`` (async,
may raise) and ``validate`` (checks a step config). The engine never looks
inside an agent; it only resolves agents by their ``agentType`` through an
:class:`AgentRegistry`.

Example:
    from agentrelay.services.pipeline import Agent, register_agent

    @register_agent
    class Summarizer(Agent):
        type = "summarizer"
        config_model = SummarizerConfig

        async def execute(self, input, config=None):
            ...
"""

from __future__ import annotations

import importlib
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any, ClassVar, Protocol, runtime_checkable

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from agentrelay.exceptions import PipelineConfigError, UnknownAgentError
from agentrelay.types import AgentConfig
from agentrelay.utils.logger import logger

from .message import StepSpec


@dataclass(slots=True)
class ValidationResult:
    """Outcome of validating a step config."""

    valid: bool
    errors: list[str] = field(default_factory=list)


@runtime_checkable
class SupportsExecute(Protocol):
    """Anything the orchestrator can run as a step."""

    type: str

    async def execute(self, input: Any, config: AgentConfig | None = None) -> Any: ...


class Agent(ABC):
    """Base class for pluggable agents.

    Subclasses set ``type`` and implement ``execute``. Declaring a pydantic
    ``config_model`` gives ``validate`` a typed schema to check step configs
    against; without one every config is accepted.
    """

    type: ClassVar[str]
    config_model: ClassVar[type[BaseModel] | None] = None

    @abstractmethod
    async def execute(self, input: Any, config: AgentConfig | None = None) -> Any:
        """Run the agent on the previous step's output."""

    def validate(self, config: AgentConfig) -> ValidationResult:
        """Check a step config against ``config_model``."""
        if self.config_model is None:
            return ValidationResult(valid=True)
        try:
            self.config_model.model_validate(config)
        except PydanticValidationError as e:
            errors = [
                f"{'.'.join(str(p) for p in err['loc']) or 'config'}: {err['msg']}"
                for err in e.errors()
            ]
            return ValidationResult(valid=False, errors=errors)
        return ValidationResult(valid=True)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(type='{self.type}')"


class PassthroughAgent(Agent):
    """Returns its input unchanged. Useful to smoke-test a deployment."""

    type = "passthrough"

    async def execute(self, input: Any, config: AgentConfig | None = None) -> Any:  # noqa: ARG002
        return input


type AgentFactory = Callable[[], Agent]


class AgentRegistry:
    """Maps agent type names to factories producing agent instances."""

    def __init__(self) -> None:
        self._factories: dict[str, AgentFactory] = {}

    def register(self, factory: AgentFactory, agent_type: str | None = None) -> None:
        """Register an agent class (or any zero-argument factory).

        Args:
            factory: Agent subclass or callable returning an agent.
            agent_type: Name to register under. Defaults to ``factory.type``.

        Raises:
            PipelineConfigError: If no type name can be determined.
        """
        name = agent_type or getattr(factory, "type", None)
        if not name:
            raise PipelineConfigError(f"Cannot determine agent type for {factory!r}")
        if name in self._factories:
            logger.warning(f"Agent type '{name}' re-registered")
        self._factories[name] = factory

    def unregister(self, agent_type: str) -> None:
        self._factories.pop(agent_type, None)

    def clear(self) -> None:
        self._factories.clear()

    def __contains__(self, agent_type: object) -> bool:
        return agent_type in self._factories

    @property
    def agent_types(self) -> list[str]:
        return sorted(self._factories)

    def resolve(self, agent_type: str) -> Agent:
        """Instantiate the agent registered under ``agent_type``.

        Raises:
            UnknownAgentError: If nothing is registered under that name.
        """
        factory = self._factories.get(agent_type)
        if factory is None:
            raise UnknownAgentError(agent_type)
        return factory()

    def resolve_steps(self, steps: Iterable[StepSpec]) -> list[Agent]:
        """Instantiate one agent per step, preserving order."""
        return [self.resolve(step.agent_type) for step in steps]

    def validate_steps(self, steps: Iterable[StepSpec]) -> None:
        """Validate every step config with its agent's ``validate``.

        Raises:
            PipelineConfigError: Listing every problem found, prefixed by the 1-based step index.
        """
        errors: list[str] = []
        for index, step in enumerate(steps, start=1):
            try:
                agent = self.resolve(step.agent_type)
            except UnknownAgentError as e:
                errors.append(f"step {index}: {e}")
                continue
            result = agent.validate(step.config)
            if not result.valid:
                errors.extend(f"step {index} ({step.agent_type}): {err}" for err in result.errors)

        if errors:
            raise PipelineConfigError("Invalid pipeline step configuration", errors=errors)


# Default registry: agent modules register into it on import
agent_registry = AgentRegistry()
agent_registry.register(PassthroughAgent)


def register_agent[AgentT: type[Agent]](agent_cls: AgentT) -> AgentT:
    """Class decorator registering an agent on the default registry."""
    agent_registry.register(agent_cls)
    return agent_cls


def load_agent_modules(modules: Iterable[str]) -> None:
    """Import the given modules so their agents register themselves.

    Args:
        modules: Dotted module paths, typically ``settings.agent_modules``.
    """
    for module_name in modules:
        try:
            importlib.import_module(module_name)
            logger.info(f"Loaded agents from {module_name}")
        except ImportError as e:
            logger.error(f"Failed to load agents from {module_name}: {e}")
