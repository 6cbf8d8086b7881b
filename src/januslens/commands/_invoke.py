"""Dispatch of commands by name."""

from januslens.commands._commands import COMMANDS
from januslens.commands._result import CommandResult
from januslens.exceptions import JanusError


def invoke(command: str, /, **kwargs: object) -> CommandResult:
    """Run a command by name and wrap its outcome.

    Args:
        command: Registered command name, e.g. "get_status".
        **kwargs: Command arguments.

    Returns:
        A successful result holding the command output, or a failure
        holding the error kind and message for any JanusError.

    Raises:
        ValueError: If no command has that name.
    """
    try:
        func = COMMANDS[command]
    except KeyError:
        msg = f"Unknown command: {command}"
        raise ValueError(msg) from None

    try:
        data = func(**kwargs)
    except JanusError as e:
        return CommandResult.failure(e)
    return CommandResult.success(data)
