# -*- coding: utf-8 -*-
"""
ProPresenter Words Bridge - Command-line launcher
Runs one Words CLI operation through the bridge and prints the JSON response
"""
import sys

from src.words_bridge.cli import main


if __name__ == "__main__":
    sys.exit(main())
