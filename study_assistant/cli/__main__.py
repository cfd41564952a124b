# =============================================================================
# study_assistant/cli/__main__.py - Package Entry Point
# =============================================================================
#
# Enables:
#     python -m study_assistant.cli <command> [options]
#
# Delegates to study.py, which owns every subcommand.
# =============================================================================

"""Allow ``python -m study_assistant.cli`` execution."""

from study_assistant.cli.study import main

main()
