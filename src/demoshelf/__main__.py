"""
demoshelf CLI Entry Point

Allows running the package as a module: python -m demoshelf
"""

from demoshelf.cli import main

if __name__ == "__main__":
    main()
