"""
Entry point for running apm as a module.

Usage: python -m apm [command] [options]
"""

from apm.cli.parser import main

if __name__ == "__main__":
    main()
