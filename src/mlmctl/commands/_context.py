"""AppContext — shared Click context for all commands.

Created once by the root CLI group and flows to all subcommands via
``@click.pass_obj``. Provides lazy Registry initialization, the acting
member, and centralized result emission (stdout/stderr routing + exit
codes).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from mlmctl.output.formatters import OutputSettings, format_result

if TYPE_CHECKING:
    from mlmctl.config.settings import MlmSettings
    from mlmctl.domain.members import Actor
    from mlmctl.infrastructure.registry import Registry
    from mlmctl.services.result import ServiceResult


class AppContext:
    """Shared context flowing through Click's command hierarchy.

    The registry is created on first use so ``--help`` and ``--version``
    never touch the database.
    """

    def __init__(self, settings: MlmSettings) -> None:
        self.settings = settings
        self._registry: Registry | None = None
        self._actor: Actor | None = None

        from mlmctl.config.logging import configure_logging

        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

    @property
    def registry(self) -> Registry:
        """The registry instance (created lazily on first access)."""
        if self._registry is None:
            from mlmctl.infrastructure.registry import Registry

            self._registry = Registry(self.settings)
        return self._registry

    @property
    def actor(self) -> Actor:
        """The member commands act as: ``--as USERNAME`` or the admin.

        Emits the lookup error and exits 1 if the member does not exist.
        """
        if self._actor is None:
            from mlmctl.services.access import AccessService, actor_from_result

            result = AccessService(self.registry).resolve_actor(self.settings.actor)
            if not result.ok:
                self.emit(result)
            self._actor = actor_from_result(result)
        return self._actor

    def emit(self, result: ServiceResult) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Success (``result.ok``): writes to stdout, returns normally.
          Warnings go to stderr so they don't pollute piped output.
        * Failure: writes to stderr, exits with code 1.
        """
        settings = OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )
        output = format_result(result, settings=settings)
        if result.ok:
            click.echo(output)
            # In JSON mode, warnings are already in the serialized payload.
            if not settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)
