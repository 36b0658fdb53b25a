import sys

from wine_gaming.cli import main

if __name__ == '__main__':
    sys.exit(main())
