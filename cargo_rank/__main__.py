import sys

from cargo_rank.cli import main

sys.exit(main())
