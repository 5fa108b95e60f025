import os
import sys

# Ensure src/ is on sys.path so tests can import servicehub.*, and tests/ for the shared factories
HERE = os.path.abspath(os.path.dirname(__file__))
ROOT = os.path.abspath(os.path.join(HERE, "..", "src"))
for path in (ROOT, HERE):
	if path not in sys.path:
		sys.path.insert(0, path)

os.environ.setdefault("LOCAL_TIMEZONE", "Asia/Kolkata")
os.environ.setdefault("JWT_SECRET", "unit-test-secret-0123456789abcdef")
