import sys

from ragloader.cli.ingest import main

sys.exit(main())
