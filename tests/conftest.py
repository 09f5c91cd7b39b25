import os
import sys

# Make the top-level modules (compiler, promptc) and the promptlang package importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))
