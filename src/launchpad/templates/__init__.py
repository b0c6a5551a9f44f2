"""Launchpad template rendering.

Jinja2 templates for the synthesized environment template, the mobile
scaffold files and the assistant rules auth section. Output is
deterministic: identical input always renders identical text.
"""

from launchpad.templates.renderer import EnvironmentGenerator, WriteResult

__all__ = ["EnvironmentGenerator", "WriteResult"]
