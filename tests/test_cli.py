"""
CLI tests against a throwaway SQLite file.
"""

import json

import pytest

from seo_pipeline.cli import main
from seo_pipeline.config import Config


@pytest.fixture
def database_url(tmp_path):
    url = f"sqlite:///{tmp_path / 'seo.db'}"
    assert main(["--database-url", url, "init-db"]) == 0
    return url


class TestCli:

    @pytest.mark.integration
    def test_site_and_job_lifecycle(self, database_url, capsys):
        assert main(["--database-url", database_url, "add-site", "https://www.example.com/"]) == 0
        assert "Site 1: example.com" in capsys.readouterr().out

        assert main(["--database-url", database_url, "create-job", "--site-id", "1"]) == 0
        job_id = capsys.readouterr().out.strip()

        assert main(["--database-url", database_url, "job-status", job_id]) == 0
        assert json.loads(capsys.readouterr().out)["status"] == "queued"

    @pytest.mark.integration
    def test_unknown_job_status(self, database_url, capsys):
        assert main(["--database-url", database_url, "job-status", "missing"]) == 1

    @pytest.mark.integration
    def test_import_and_trend(self, database_url, tmp_path, capsys):
        main(["--database-url", database_url, "add-site", "example.com"])
        rows = tmp_path / "rows.json"
        rows.write_text(json.dumps([
            {"keyword": "roof cleaning", "date": "2024-01-01", "position": 20},
            {"keyword": "roof cleaning", "date": "2024-01-02", "position": 10},
        ]))
        capsys.readouterr()

        assert main([
            "--database-url", database_url, "archive", "import",
            "--site-id", "1", "--file", str(rows),
        ]) == 0
        assert json.loads(capsys.readouterr().out)["imported"] == 2

        assert main([
            "--database-url", database_url, "trend",
            "--site-id", "1", "--keyword", "roof cleaning",
        ]) == 0
        output = capsys.readouterr().out
        assert "2024-01-02  #10.0  roof cleaning  (import)" in output
        assert '"change": 10.0' in output

    @pytest.mark.integration
    def test_import_requires_file(self, database_url):
        assert main(["--database-url", database_url, "archive", "import", "--site-id", "1"]) == 1

    @pytest.mark.integration
    def test_invalid_config_refuses_to_run(self, tmp_path, monkeypatch, capsys):
        monkeypatch.setattr(Config, "REQUEST_TIMEOUT", 0)
        db_file = tmp_path / "never.db"

        assert main(["--database-url", f"sqlite:///{db_file}", "init-db"]) == 1
        assert "REQUEST_TIMEOUT (0) must be positive" in capsys.readouterr().err
        assert not db_file.exists()
