"""Built-in CLI commands for loginkit.

* :mod:`~loginkit.commands.auth` -- ``login``, ``register``, ``logout``,
  ``status``, ``token``, ``whoami`` and the ``clients`` group.
* :mod:`~loginkit.commands.config` -- view and modify global settings.

Single commands are plain callbacks registered directly on the root app;
multi-command groups export a :class:`typer.Typer` sub-application.
"""
