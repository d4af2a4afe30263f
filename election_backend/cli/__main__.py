import sys

from election_backend.cli import main

sys.exit(main())
