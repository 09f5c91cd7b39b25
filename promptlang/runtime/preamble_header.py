# ==========================================
# promptlang RUNTIME (generated preamble)
# ==========================================
import asyncio
import builtins
import json
import os
import re
import sys
from abc import ABC, abstractmethod
from typing import Any, Dict

import jinja2
import requests

# Prompt name -> {"path", "input_type", "return_type"}
PROMPT_REGISTRY = {}

# Prompt name -> canned response (or callable taking the validated input)
PROMPT_MOCKS = {}


def log_info(message):
    builtins.print(f"\033[92m\033[1mINFO:\033[0m {message}", file=sys.stderr)


def log_error(message):
    builtins.print(f"\033[91m\033[1mERROR:\033[0m {message}", file=sys.stderr)


def log_debug(message):
    """Only printed when PROMPTLANG_DEBUG is set."""
    if os.environ.get("PROMPTLANG_DEBUG"):
        builtins.print(f"\033[94mDEBUG:\033[0m {message}", file=sys.stderr)
