import os
import sys

import pytest

# Ensure repo-local imports (e.g., `import morris`) resolve without installing.
src_dir = os.path.abspath(os.path.dirname(__file__))
if src_dir not in sys.path:
    sys.path.insert(0, src_dir)


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "-M",
        "--no-multiprocess",
        action="store_true",
        default=False,
        dest="skip_multiprocess",
        help="Skip tests marked with @pytest.mark.multiprocess (start worker processes)",
    )


def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]
) -> None:
    if config.getoption("skip_multiprocess"):
        skip_mp = pytest.mark.skip(reason="worker process tests disabled by -M")
        for item in items:
            if "multiprocess" in item.keywords:
                item.add_marker(skip_mp)
