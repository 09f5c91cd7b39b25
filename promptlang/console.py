"""
Console logging for the compiler and CLI.

Everything goes to stderr so that compiled code printed to stdout stays clean.
"""
import sys

# Global verbose flag
_VERBOSE = False


def set_verbose(value):
    """Set the global verbose flag."""
    global _VERBOSE
    _VERBOSE = value


def debug_log(message):
    """Log a debug message to stderr if verbose mode is enabled."""
    if _VERBOSE:
        print(f"\033[94mDEBUG:\033[0m {message}", file=sys.stderr)


def log(message):
    """Log informational messages to stderr."""
    print(f"\033[92m\033[1mINFO:\033[0m {message}", file=sys.stderr)


def warn(message):
    """Log a warning to stderr."""
    print(f"\033[93m\033[1mWARNING:\033[0m {message}", file=sys.stderr)


def error(message):
    """Log an error to stderr."""
    print(f"\033[91m\033[1mERROR:\033[0m {message}", file=sys.stderr)
