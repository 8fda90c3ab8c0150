import sys

from a2a_tasks.cli import main

sys.exit(main())  # type: ignore[call-arg]
