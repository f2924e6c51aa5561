"""Templates package for kafkaprov configuration and systemd unit generation."""

from kafkaprov.templates.engine import TemplateEngine

__all__ = ["TemplateEngine"]
