import os
import subprocess
import sys
import pytest

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
CLI = os.path.join(REPO_ROOT, "kv_parser.py")

TEST_DIR = os.path.dirname(__file__)

kv_files = sorted(f for f in os.listdir(TEST_DIR) if f.endswith(".kv"))

VALID_FILES = [f for f in kv_files if f.startswith("pass")]
INVALID_FILES = [f for f in kv_files if f.startswith("fail")]

# Hard fail if sample files are missing
if not VALID_FILES:
    raise RuntimeError("No pass*.kv files found in samples directory")
if not INVALID_FILES:
    raise RuntimeError("No fail*.kv files found in samples directory")

@pytest.mark.parametrize("filename", VALID_FILES)
def test_valid_file_returns_0(filename):
    path = os.path.join(TEST_DIR, filename)
    result = subprocess.run([sys.executable, CLI, path], capture_output=True, text=True)
    assert result.returncode == 0, f"Expected 0 from {filename}, got {result.returncode}: {result.stderr}"

@pytest.mark.parametrize("filename", INVALID_FILES)
def test_invalid_file_returns_1(filename):
    path = os.path.join(TEST_DIR, filename)
    result = subprocess.run([sys.executable, CLI, path], capture_output=True, text=True)
    assert result.returncode == 1, f"Expected 1 from {filename}, got {result.returncode}"
    assert "Error parsing data:" in result.stderr
