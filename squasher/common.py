import os


def get_build_version():
    return os.getenv("SQUASH_BUILD_COMMIT", "Unknown")
