"""Command-line tools for livekb.

- ``python -m livekb.cli process --session S`` -- parse, chunk and index a
  session's uploads.
- ``python -m livekb.cli context --session S --topic T`` -- print
  score-gated context for a topic.
- ``python -m livekb.cli list --session S`` -- list processed manifests.
- ``python -m livekb.cli cleanup --session S`` -- remove a session folder.
"""
