"""Event logger used across the client."""

from __future__ import annotations

import logging

from ..logging_config import debug_enabled
from . import event_catalog

EVENT_NAME_WIDTH = 32
PREFIX_WIDTH = 24


def render_event(
    domain: str, action: str, fields: dict[str, object]
) -> tuple[str, bool]:
    """Human text for an event and whether it had to be derived from its name.

    A template whose placeholders are not all supplied is returned as-is
    rather than dropping the event.
    """
    template = event_catalog.EVENT_TEMPLATES.get((domain, action))
    if template is None:
        return f"{domain.replace('_', ' ')}: {action.replace('_', ' ')}", True
    try:
        return template.format(**fields), False
    except (KeyError, IndexError, ValueError):
        return template, False


class ClientLogger:
    """Structured ``domain/action`` event logger.

    ``user`` (the nick) and ``channel`` keywords form a fixed width
    ``[nick#channel]`` prefix. The remaining keywords fill the template; in
    DEBUG mode they are also appended as ``(key=value, ...)`` after an
    aligned ``domain_action`` column.
    """

    def __init__(self, name: str = "basicirc") -> None:
        self.logger = logging.getLogger(name)
        self.logger.handlers.clear()
        self.logger.setLevel(logging.DEBUG if debug_enabled() else logging.INFO)
        # Output goes through the root handlers installed by LoggerConfigurator
        self.logger.propagate = True

    def log_event(
        self,
        domain: str,
        action: str,
        level: int = logging.INFO,
        human: str | None = None,
        *,
        exc_info: bool = False,
        **kwargs: object,
    ) -> None:
        if not self.logger.isEnabledFor(level):
            return
        user = kwargs.pop("user", None)
        channel = kwargs.pop("channel", None)
        fields = dict(kwargs)
        derived = False
        if human is None:
            human, derived = render_event(domain, action, fields)
        if derived:
            fields["derived"] = True

        event_name = f"{domain}_{action}".lower()
        if event_name == "irc_privmsg":
            human = self._decorate_privmsg(
                human, channel if isinstance(channel, str) else None
            )
        prefix = self._build_prefix(
            user if isinstance(user, str) else None,
            channel if isinstance(channel, str) else None,
        )
        if debug_enabled():
            msg = self._debug_line(event_name, prefix, human, fields)
        else:
            msg = f"{prefix} {human or event_name}"
        self.logger.log(level, msg, exc_info=exc_info)

    @staticmethod
    def _build_prefix(user: str | None, channel: str | None) -> str:
        label = f"{user or 'system'}{channel or ''}"
        return f"[{label.ljust(PREFIX_WIDTH)[:PREFIX_WIDTH]}]"

    @staticmethod
    def _decorate_privmsg(text: str, channel: str | None) -> str:
        # "💬 #channel sender: body"
        text = text.removeprefix("💬").lstrip()
        return f"💬 {channel} {text}" if channel else f"💬 {text}"

    @staticmethod
    def _debug_line(
        event_name: str, prefix: str, human: str, fields: dict[str, object]
    ) -> str:
        if len(event_name) > EVENT_NAME_WIDTH:
            event_name = event_name[: EVENT_NAME_WIDTH - 1] + "…"
        line = f"{event_name.ljust(EVENT_NAME_WIDTH)} {prefix}"
        if human:
            line = f"{line} {human}"
        if fields:
            line += " (" + ", ".join(f"{k}={v}" for k, v in fields.items()) + ")"
        return line


logger = ClientLogger()
