"""Local preview server core for portal content exports.

Resolves pages, templates and snippets from an export on disk, renders them
through a Liquid-compatible Jinja2 pipeline that leaves bundled scripts
untouched, and answers API calls from recorded fixtures before falling back
to a live backend.

Exports
-------
- ``app``: Cyclopts application behind the ``preview`` command.
- ``main``: Convenience function that invokes the app.

Examples
--------
>>> from portal_preview import main
>>> main()  # doctest: +SKIP
>>> from portal_preview import app
>>> app.name[0]
'preview'
"""

from __future__ import annotations

from .cli import app, main

__all__ = ["app", "main"]
