"""
Streaming match engine package.

- matcher: pattern matcher port and the ``re``-backed implementation
- scanner: chunked stream scanning with bounded memory
- context: line context extraction and dedent
- formatters: per-match rendering modes and the callback hook
- limiter: match ceiling shared across the scans of one search
"""
