"""
SKVault — self-custody vault with guardian recovery.

One owner holds the keys. A committee of guardians, each bound to its
own delay, can hand ownership on if the owner goes silent for long enough.

A smilinTux Open Source Project.
"""

import os

__version__ = "0.1.0"
__author__ = "smilinTux"

VAULT_HOME = os.environ.get("SKVAULT_HOME", "~/.skvault")
