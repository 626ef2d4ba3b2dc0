import sys

from compress_video.cli import main

sys.exit(main())
