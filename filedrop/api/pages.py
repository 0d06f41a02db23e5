from __future__ import annotations

import html

from ..domain.files import ServedFile, format_size_mb

__all__ = ["NOT_FOUND_BODY", "FILE_UNAVAILABLE_BODY", "render_info_page"]

NOT_FOUND_BODY = "Nothing to see here. Ask the sender for the full link.\n"
FILE_UNAVAILABLE_BODY = "The shared file is no longer available.\n"

_INFO_TEMPLATE = """<!doctype html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<meta name="robots" content="noindex">
<title>{name}</title>
<style>
  body {{ font-family: system-ui, sans-serif; margin: 0; min-height: 100vh;
         display: flex; align-items: center; justify-content: center; background: #f4f4f5; }}
  main {{ background: #fff; padding: 2rem 2.5rem; border-radius: 12px;
         box-shadow: 0 1px 4px rgba(0, 0, 0, .1); text-align: center; max-width: 32rem; }}
  h1 {{ font-size: 1.25rem; word-break: break-all; }}
  .size {{ color: #71717a; }}
  a.button {{ display: inline-block; margin-top: 1rem; padding: .6rem 1.4rem; border-radius: 8px;
             background: #16a34a; color: #fff; text-decoration: none; }}
</style>
</head>
<body>
<main>
  <h1>{name}</h1>
  <p class="size">{size} MB</p>
  <a class="button" href="{href}" download>Download</a>
</main>
</body>
</html>
"""


def render_info_page(served: ServedFile) -> str:
    return _INFO_TEMPLATE.format(
        name=html.escape(served.display_name),
        size=format_size_mb(served.size_bytes),
        href=html.escape(served.download_path, quote=True),
    )
