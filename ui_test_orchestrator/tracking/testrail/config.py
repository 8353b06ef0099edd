"""Configuration for the TestRail tracker."""

from pydantic import BaseModel, SecretStr


class TestRailConfig(BaseModel):
    """Configuration for the TestRail tracker."""

    __test__ = False

    api_base_url: str
    username: str
    api_key: SecretStr
    project_id: int
    suite_id: int
    # Path prefix of the v2 API; self-hosted instances behind a rewrite use "/api/v2"
    api_root: str = "/index.php?/api/v2"
