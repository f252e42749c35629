import sys

from shon.cli import main

sys.exit(main())
