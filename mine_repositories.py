"""
Mine GitHub for TypeScript + React + Jest repositories.

Usage:
    export GITHUB_TOKEN=...   # or PAT / GH_TOKEN, or put it in .env
    python mine_repositories.py

Results are appended to output/repos_ts_react_jest.csv (OUTPUT_FILE).
"""

import sys
import traceback

from dotenv import load_dotenv

from github_miner.cancellation import CancellationToken, install_signal_handlers
from github_miner.pipeline import ConfigurationError, MinerConfig, MinerPipeline


def print_settings(config: MinerConfig) -> None:
    print(f"Limits: MAX_QUALIFIED={config.max_qualified} | MAX_ANALYZED={config.max_analyzed}")
    print(
        f"Filters: REQUIRE_FRONTEND_TESTS={config.require_frontend_tests} | "
        f"EXCLUDE_COURSE_BOILERPLATE={config.exclude_noise} | "
        f"README_COURSE_CHECK={config.readme_check}"
    )
    print(
        f"Search: SEARCH_MODE={config.search_mode} | BATCH_SIZE={config.batch_size} | "
        f"QUERY_WINDOWS={config.query_windows} | CONCURRENCY={config.concurrency}"
    )


def main() -> int:
    """Entry point. Returns the process exit code."""
    load_dotenv()

    print("=" * 80)
    print("GitHub Repository Miner: TypeScript + React + Jest")
    print("=" * 80)
    print()

    try:
        config = MinerConfig.from_env()
        config.require_token()
    except ConfigurationError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1

    print("[OK] GitHub token loaded")
    print_settings(config)

    cancel_token = CancellationToken()
    install_signal_handlers(cancel_token)

    pipeline = MinerPipeline(config, cancel_token=cancel_token)

    try:
        pipeline.run()
    except Exception as e:
        print(f"\n[ERROR] Fatal error: {e}", file=sys.stderr)
        traceback.print_exc()
        return 1
    finally:
        pipeline.print_summary()

    return 0


if __name__ == "__main__":
    sys.exit(main())
