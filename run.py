#!/usr/bin/env python3
"""
run.py — Launch obs-link without installing.

Usage (from the obs-link directory):
    python run.py check
    python run.py check --password mypassword
    python run.py watch
    python run.py call GetSceneList
    python run.py init-config
"""
import sys
from pathlib import Path

# Ensure the project root is on the path
sys.path.insert(0, str(Path(__file__).parent))

from obs_link.main import app

if __name__ == "__main__":
    app()
