#!/usr/bin/env python3
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

print(
    f"[wallet-e2e] browser={os.environ.get('E2E_BROWSER') or os.environ.get('SELENIUM_BROWSER') or 'chrome'} | "
    f"extension={os.environ.get('E2E_EXTENSION_PATH', 'dist/<browser>')} | "
    f"dapp={os.environ.get('E2E_DAPP_URL', 'http://127.0.0.1:8080/')} | "
    f"port={os.environ.get('E2E_CDP_PORT', '9222')}",
    file=sys.stderr,
)

from e2e_harness.wallet.main import main  # noqa: E402

if __name__ == "__main__":
    sys.exit(main())
