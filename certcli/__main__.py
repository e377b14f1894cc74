import sys

from certcli.cli import main

sys.exit(main())
