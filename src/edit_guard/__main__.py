import sys

from edit_guard.cli.main import main

sys.exit(main())
