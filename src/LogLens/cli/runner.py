"""Command runner for coordinating CLI execution.

Manages logging configuration, component creation, resource cleanup and
error handling for command execution.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

import click

from LogLens.config import AppConfig
from LogLens.renderers import OutputWriter, create_output_writer
from LogLens.services import BrowseService, create_browse_service
from LogLens.utils.log import configure_logging, log


class Command(Protocol):
    def execute(self) -> None: ...


class CommandRunner:
    """Orchestrates command execution with proper resource management.

    Every command runs inside the same boundary: errors are logged once and
    turned into `click.Abort`.
    """

    def __init__(
        self,
        config: AppConfig,
        *,
        service_factory: Callable[[AppConfig], BrowseService] = create_browse_service,
    ) -> None:
        """Initialize command runner.

        Args:
            config: Application configuration.
            service_factory: Builds the browse service; replaced in tests.
        """
        self.config = config
        self.service_factory = service_factory

    def run(self, action: str, build: Callable[[], Command]) -> None:
        """Execute a command that needs no backend connection.

        Raises:
            click.Abort: When the command fails.
        """
        self._configure(action)
        try:
            build().execute()
        except Exception as e:  # noqa: BLE001 - cli boundary
            log.error("%s failed: %s", action.capitalize(), e)
            raise click.Abort from e

    def run_with_service(
        self,
        action: str,
        build: Callable[[BrowseService, OutputWriter], Command],
        *,
        output_format: str = "console",
    ) -> None:
        """Execute a command against a browse service, closing it afterwards.

        Args:
            action: The CLI command name (e.g., 'search').
            build: Creates the command from the service and output writer.
            output_format: Output writer format name.

        Raises:
            click.Abort: When the command fails.
        """
        self._configure(action)
        try:
            output_writer = create_output_writer(
                output_format,
                show_row_numbers=self.config.view.show_row_numbers,
            )
            with self.service_factory(self.config) as service:
                build(service, output_writer).execute()
        except Exception as e:  # noqa: BLE001 - cli boundary
            log.error("%s failed: %s", action.capitalize(), e)
            raise click.Abort from e

    def _configure(self, action: str) -> None:
        configure_logging(
            level=self.config.runtime.level,
            action=action,
            log_to_file=self.config.runtime.to_file,
            log_dir=self.config.runtime.dir,
        )
