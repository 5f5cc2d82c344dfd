"""
Entry point for: python -m lspcomplete
"""
from lspcomplete.main import main

if __name__ == "__main__":
    main()
