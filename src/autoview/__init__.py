"""AutoView: click-to-source inspector for embedded web app previews."""

__version__ = "0.3.0"
