import pytest
from unittest.mock import MagicMock, patch

from google.auth.exceptions import DefaultCredentialsError

from vertexmux.auth import SCOPES, VertexAuth
from vertexmux.config import Settings
from vertexmux.errors import AuthenticationError


class TestVertexAuth:

    def test_not_initialized(self):
        auth = VertexAuth(Settings())
        assert auth.initialized is False
        assert auth.health() == {"status": "not_initialized", "project_id": None, "location": "us-central1"}
        with pytest.raises(AuthenticationError, match="not initialized"):
            auth.get_client()

    @patch("vertexmux.auth.genai.Client")
    @patch("vertexmux.auth.google.auth.default")
    def test_initialize_with_detected_project(self, mock_default, mock_client):
        credentials = MagicMock()
        mock_default.return_value = (credentials, "detected-project")

        auth = VertexAuth(Settings(location="europe-west4"))
        client = auth.initialize()

        mock_default.assert_called_once_with(scopes=SCOPES)
        mock_client.assert_called_once_with(
            vertexai=True, project="detected-project", location="europe-west4", credentials=credentials,
        )
        assert client is mock_client.return_value
        assert auth.get_client() is client
        assert auth.health()["status"] == "connected"
        assert auth.project_id == "detected-project"

    @patch("vertexmux.auth.genai.Client")
    @patch("vertexmux.auth.google.auth.default")
    def test_configured_project_wins(self, mock_default, mock_client):
        mock_default.return_value = (MagicMock(), "detected-project")
        auth = VertexAuth(Settings(project_id="configured"))
        auth.initialize()
        assert mock_client.call_args.kwargs["project"] == "configured"

    @patch("vertexmux.auth.google.auth.default")
    def test_missing_credentials(self, mock_default):
        mock_default.side_effect = DefaultCredentialsError("no ADC")
        auth = VertexAuth(Settings())
        with pytest.raises(AuthenticationError, match="gcloud auth application-default login"):
            auth.initialize()
        assert auth.initialized is False

    @patch("vertexmux.auth.google.auth.default")
    def test_missing_project(self, mock_default):
        mock_default.return_value = (MagicMock(), None)
        with pytest.raises(AuthenticationError, match="Could not detect Project ID"):
            VertexAuth(Settings()).initialize()
