"""
ccswitch - provider profiles for AI coding CLIs

Keeps named provider profiles (API keys, endpoints, model overrides) for
Claude Code, Codex and Gemini CLI and switches the active one per tool.

Quick Start:
    pip install -e .
    ccswitch provider add --app claude
"""

from ccswitch.cli.cli import main

if __name__ == "__main__":
    main()
