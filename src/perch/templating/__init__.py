"""Kida environment setup for perch pages."""

from perch.templating.builtins import BUILTIN_TEMPLATES
from perch.templating.integration import create_environment

__all__ = ["BUILTIN_TEMPLATES", "create_environment"]
