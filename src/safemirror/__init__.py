"""
safemirror: guarded directory mirroring.

Mirror or copy one directory tree onto another with cp, rsync or rclone.
Every run is validated, previewed and backed up before anything is touched.
"""

import os

__version__ = "0.3.0"

DEFAULT_CONFIG_PATH = os.environ.get(
    "SAFEMIRROR_CONFIG", "~/.config/safemirror/config"
)
