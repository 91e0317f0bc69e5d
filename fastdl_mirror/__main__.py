"""
Allows running the mirror as: python -m fastdl_mirror
"""

from fastdl_mirror.cli import main

if __name__ == "__main__":
    main()
