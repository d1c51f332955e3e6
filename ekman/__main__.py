import sys

from ekman.cli import main

sys.exit(main())
