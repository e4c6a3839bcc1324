"""User-facing surfaces: the argparse CLI and its plain-text renderer."""

from dircontext.ui.render import CLIRenderer, create_renderer

__all__ = ["CLIRenderer", "create_renderer"]
