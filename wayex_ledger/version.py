"""Version and build information."""

import os

VERSION = "0.1.0"

# Filled in by the build environment
BUILD_DATE = os.getenv('BUILD_DATE')
VCS_REF = os.getenv('VCS_REF')


def version_string():
    return f"wayex_ledger v{VERSION} ({VCS_REF or 'unknown'} {BUILD_DATE or 'unknown'})"
