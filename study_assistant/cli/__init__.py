# =============================================================================
# study_assistant/cli/__init__.py - CLI Module Overview
# =============================================================================
#
# Command-line access to the study-assistant pipeline.  A single module,
# study.py, exposes every operation as an argparse subcommand so operators
# can check backend health, ingest files, and run generation tasks without
# a web layer in front of the StudyAssistant facade.
#
# Architecture Notes:
#   - argparse only; no Click/Typer.
#   - Output is JSON on stdout; logs go to stderr so the two can be piped
#     separately.
#   - Exit code 0 on success, 1 on any failure.
# =============================================================================

"""CLI tools for the study-assistant pipeline.

- ``python -m study_assistant.cli diagnose`` — check embedding and vector store
- ``python -m study_assistant.cli ingest --file notes.pdf`` — ingest a file
"""
