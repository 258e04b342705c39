from pathlib import Path

import pytest

from ebm_validator.config.settings import Settings


@pytest.fixture()
def test_settings(tmp_path: Path) -> Settings:
    return Settings(files_root=tmp_path, enrichment_enabled=False, log_level="DEBUG")
