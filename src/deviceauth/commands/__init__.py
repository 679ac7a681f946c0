"""Built-in CLI sub-commands for deviceauth.

* :mod:`~deviceauth.commands.login` -- run the device authorization flow.
* :mod:`~deviceauth.commands.config` -- view and modify saved settings.

``login`` is a plain callback registered directly on the root app;
``config`` is a :class:`typer.Typer` sub-application.
"""
