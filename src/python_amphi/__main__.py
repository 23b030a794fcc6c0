import sys

from python_amphi.cli import main

sys.exit(main())
