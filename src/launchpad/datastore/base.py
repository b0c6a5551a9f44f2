"""Abstract base class for datastore provisioners.

Every strategy satisfies the same contract: provision() returns a
DatastoreConfig and never raises for tool or parsing failures. A failed
provision returns placeholder values plus warnings so the wizard can finish
and the operator can fix the configuration by hand. The only exception that
leaves provision() is SetupAborted, raised when the operator chooses to stop.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path

from launchpad.adapters.process import ProcessRunner
from launchpad.config import LaunchpadConfig
from launchpad.models.datastore import DatastoreConfig, DatastoreStrategy
from launchpad.utils.prompts import Prompter


@dataclass
class ProvisionContext:
    """Everything a provisioner needs from the running wizard.

    Attributes:
        root: Project root
        config: Launchpad configuration
        runner: Process runner for every external command
        prompter: Operator prompts
    """

    root: Path
    config: LaunchpadConfig = field(default_factory=LaunchpadConfig)
    runner: ProcessRunner = field(default_factory=ProcessRunner)
    prompter: Prompter = field(default_factory=Prompter)


class DatastoreProvisioner(ABC):
    """Abstract interface for datastore strategies.

    Attributes:
        strategy: The strategy this provisioner implements
        context: Shared wizard context
    """

    strategy: DatastoreStrategy

    def __init__(self, context: ProvisionContext) -> None:
        """Initialize the provisioner.

        Args:
            context: Shared wizard context
        """
        self.context = context

    @property
    def config(self) -> LaunchpadConfig:
        return self.context.config

    @property
    def runner(self) -> ProcessRunner:
        return self.context.runner

    @property
    def prompter(self) -> Prompter:
        return self.context.prompter

    @abstractmethod
    def provision(self) -> DatastoreConfig:
        """Produce connection values for the datastore.

        Returns:
            DatastoreConfig, possibly a placeholder carrying warnings

        Raises:
            SetupAborted: If the operator chose to stop the wizard
        """
        pass


class ProvisioningError(Exception):
    """Raised inside a provisioner when a step cannot produce usable values.

    Provisioners catch it themselves and fall back; it never reaches the
    pipeline.
    """

    def __init__(self, step: str, message: str) -> None:
        self.step = step
        self.message = message
        super().__init__(f"{step}: {message}")
