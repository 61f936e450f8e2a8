"""
Islandora REST client wrapper for the ingester.

Provides high-level interface for:
    - Object creation and lookup
    - Relationship assertion
    - Datastream upload (add or replace) and download
    - Endpoint reachability checks
"""

import logging
import tempfile
from pathlib import Path

import httpx

from islandora_ingest.models import DatastreamSpec, ObjectSpec, RelationshipTriple

logger = logging.getLogger("islandora_ingest.rest_client")


class RepositoryError(Exception):
    """Raised when a REST call fails or returns a non-2xx status."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class IslandoraRestClient:
    """
    Wrapper for islandora_rest operations.

    Authenticates every request with the islandora_rest_authen headers.
    """

    DEFAULT_TIMEOUT = 60.0

    def __init__(
        self,
        endpoint: str,
        user: str,
        token: str,
        timeout: float | None = None,
    ):
        """
        Initialize REST client.

        Args:
            endpoint: Base REST URL, e.g. http://localhost/islandora/rest/v1
            user: REST user name
            token: REST authentication token
            timeout: Per-request timeout in seconds
        """
        self.endpoint = endpoint.rstrip("/")
        self.client = httpx.Client(
            base_url=self.endpoint + "/",
            headers={
                "X-Authorization-User": user,
                "X-Authorization-Token": token,
                "Accept": "application/json",
            },
            timeout=timeout or self.DEFAULT_TIMEOUT,
        )

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "IslandoraRestClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            response = self.client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise RepositoryError(f"{method} {path} failed: {e}") from e

        if not response.is_success:
            raise RepositoryError(
                f"{method} {path} returned {response.status_code}: "
                f"{response.text[:200]}",
                status_code=response.status_code,
            )
        return response

    def create_object(self, spec: ObjectSpec) -> str:
        """
        Create an object and return its PID.

        Args:
            spec: Object to create; a None pid lets the server assign one

        Returns:
            PID of the new object

        Raises:
            RepositoryError: If creation fails
        """
        data = {
            "label": spec.label,
            "owner": spec.owner,
            "state": spec.state.code,
        }
        if spec.pid:
            data["pid"] = spec.pid
        else:
            data["namespace"] = spec.namespace

        response = self._request("POST", "object", data=data)

        try:
            pid = response.json().get("pid")
        except ValueError as e:
            raise RepositoryError(f"Object created but response is not JSON: {e}") from e

        if not pid:
            raise RepositoryError("Object created but response carries no PID")

        logger.debug(f"Created object {pid} ({spec.content_model})")
        return pid

    def get_object(self, pid: str) -> int:
        """
        Look up an object.

        Returns:
            HTTP status code of the lookup, or 0 if the endpoint is unreachable
        """
        try:
            response = self.client.get(f"object/{pid}")
        except httpx.HTTPError as e:
            logger.warning(f"Lookup of {pid} failed: {e}")
            return 0
        return response.status_code

    def set_relationship(self, triple: RelationshipTriple) -> None:
        """
        Assert one relationship on an object.

        Raises:
            RepositoryError: If the relationship cannot be set
        """
        self._request(
            "POST",
            f"object/{triple.subject_pid}/relationship",
            data=triple.to_params(),
        )
        logger.debug(
            f"Relationship {triple.predicate} -> {triple.object} set on {triple.subject_pid}"
        )

    def upload_datastream(
        self, pid: str, spec: DatastreamSpec, replace: bool = False
    ) -> None:
        """
        Upload a file as a managed datastream.

        Args:
            pid: Object PID
            spec: Datastream to upload
            replace: Replace an existing DSID instead of adding a new one

        Raises:
            RepositoryError: If the upload fails
        """
        data = {
            "dsid": spec.dsid,
            "label": spec.label,
            "mimeType": spec.mime_type,
            "controlGroup": "M",
        }
        if spec.checksum:
            data["checksumType"] = spec.checksum_type
            data["checksum"] = spec.checksum

        if replace:
            path = f"object/{pid}/datastream/{spec.dsid}"
            data["method"] = "PUT"
        else:
            path = f"object/{pid}/datastream"

        with spec.source_path.open("rb") as f:
            files = {"file": (spec.source_path.name, f, spec.mime_type)}
            self._request("POST", path, data=data, files=files)

        logger.debug(f"Uploaded {spec.dsid} to {pid} from {spec.source_path}")

    def ping(self) -> bool:
        """Check whether the endpoint answers HTTP at all."""
        try:
            self.client.get("")
        except httpx.HTTPError as e:
            logger.error(f"Endpoint {self.endpoint} is not reachable: {e}")
            return False
        return True

    def download_datastream(self, pid: str, dsid: str) -> Path | None:
        """
        Download datastream content to a temporary file.

        The caller owns the returned file and must delete it.

        Returns:
            Path to the downloaded file, or None if the download failed
        """
        path = f"object/{pid}/datastream/{dsid}"
        handle = tempfile.NamedTemporaryFile(
            prefix=f"{pid.replace(':', '_')}_{dsid}_", delete=False
        )
        local_path = Path(handle.name)

        try:
            with handle, self.client.stream(
                "GET", path, params={"content": "true"}
            ) as response:
                if not response.is_success:
                    raise RepositoryError(
                        f"GET {path} returned {response.status_code}",
                        status_code=response.status_code,
                    )
                for chunk in response.iter_bytes():
                    handle.write(chunk)
        except (httpx.HTTPError, RepositoryError) as e:
            logger.warning(f"Could not download {dsid} from {pid}: {e}")
            local_path.unlink(missing_ok=True)
            return None

        return local_path
