import sys

from aptresolve.cli import main

sys.exit(main())
