import logging
from typing import Any, Dict, Optional

import google.auth
from google import genai
from google.auth.exceptions import DefaultCredentialsError

from .config import Settings
from .errors import AuthenticationError

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/cloud-platform"]

REMEDIATION = (
    "To resolve:\n"
    "  1. Run: gcloud auth application-default login\n"
    "  2. Make sure you have a default project: gcloud config set project YOUR_PROJECT_ID\n"
    "  3. Enable required APIs: gcloud services enable aiplatform.googleapis.com"
)


class VertexAuth:
    """
    Application-default credentials and the Vertex AI client built from them.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.location = settings.location
        self.project_id: Optional[str] = settings.project_id
        self.credentials = None
        self.client: Optional[genai.Client] = None

    @property
    def initialized(self) -> bool:
        return self.client is not None

    def initialize(self) -> genai.Client:
        """
        Resolve credentials and build the Vertex AI client.

        Raises:
            AuthenticationError: If no credentials or project can be found.
        """
        try:
            credentials, detected_project = google.auth.default(scopes=SCOPES)
        except DefaultCredentialsError as e:
            logger.error("Failed to initialize Google Cloud authentication: %s", e)
            raise AuthenticationError(f"Google Cloud authentication failed: {e}\n{REMEDIATION}") from e

        project_id = self.settings.project_id or detected_project
        if not project_id:
            raise AuthenticationError(
                "Could not detect Project ID. Make sure you are authenticated with: "
                "gcloud auth application-default login"
            )

        self.credentials = credentials
        self.project_id = project_id
        self.client = genai.Client(
            vertexai=True,
            project=project_id,
            location=self.location,
            credentials=credentials,
        )
        logger.info(
            "Google Cloud initialized successfully (project=%s, location=%s, source=%s)",
            project_id, self.location, "environment" if self.settings.project_id else "gcloud-auth",
        )
        return self.client

    def get_client(self) -> genai.Client:
        if self.client is None:
            raise AuthenticationError("Vertex AI not initialized. Call initialize() first.")
        return self.client

    def health(self) -> Dict[str, Any]:
        return {
            "status": "connected" if self.initialized else "not_initialized",
            "project_id": self.project_id,
            "location": self.location,
        }
