"""Google Drive REST client for folder and file operations.

Objective:
    Provide the file-store operations the organizer and the analysis path
    need: create/rename/move folders, list folders and files, upload and
    download file content.

High-level call tree:
    - Public API:
        - :meth:`DriveClient.create_folder` -> :class:`src.attachment_organizer.models.FolderNode`
        - :meth:`DriveClient.rename_node` -> :class:`src.attachment_organizer.models.FolderNode`
        - :meth:`DriveClient.move_node`
        - :meth:`DriveClient.upload_file` -> :class:`src.attachment_organizer.models.DriveFile`
        - :meth:`DriveClient.list_folders` -> list of ``FolderNode``
        - :meth:`DriveClient.list_files` -> list of ``DriveFile``
        - :meth:`DriveClient.download_file` -> ``bytes``
    - Internal helpers:
        - :meth:`DriveClient._list_paginated`
        - :func:`build_multipart_body`

Drive endpoints used:
    - ``POST /files`` (folder metadata)
    - ``PATCH /files/{id}`` (rename, re-parent)
    - ``POST /upload/drive/v3/files?uploadType=multipart``
    - ``GET /files?q=...`` (paginated)
    - ``GET /files/{id}?alt=media``

Error handling:
    - Every failure is raised as
      :class:`src.attachment_organizer.errors.FetchError`; callers decide
      whether it is fatal or a per-item failure.
"""

import json
import logging
import uuid
from typing import Iterable, Optional
from urllib.parse import quote

from .api_client import ApiClient
from .models import DriveFile, FolderNode

logger = logging.getLogger(__name__)

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"

SPREADSHEET_MIME_TYPES = (
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "text/csv",
)


def _escape_query_value(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


def build_multipart_body(
    metadata: dict, content: bytes, mime_type: str, boundary: Optional[str] = None
) -> tuple[bytes, str]:
    """Build a ``multipart/related`` upload body.

    Args:
        metadata: File metadata (name, parents, ...).
        content: File content.
        mime_type: Content MIME type.
        boundary: Boundary string (random when omitted).

    Returns:
        tuple[bytes, str]: Body and the ``Content-Type`` header value.
    """
    boundary = boundary or f"==============={uuid.uuid4().hex}=="
    head = (
        f"--{boundary}\r\n"
        "Content-Type: application/json; charset=UTF-8\r\n\r\n"
        f"{json.dumps(metadata)}\r\n"
        f"--{boundary}\r\n"
        f"Content-Type: {mime_type}\r\n\r\n"
    ).encode("utf-8")
    tail = f"\r\n--{boundary}--\r\n".encode("utf-8")
    return head + content + tail, f"multipart/related; boundary={boundary}"


class DriveClient(ApiClient):
    """
    Client for the Google Drive v3 REST API.

    Attributes:
        settings: Application settings.
        auth: Bearer token authenticator.
    """

    BASE_URL = "https://www.googleapis.com/drive/v3"
    UPLOAD_URL = "https://www.googleapis.com/upload/drive/v3"

    def create_folder(self, name: str, parent_id: Optional[str] = None) -> FolderNode:
        """Create a folder.

        Args:
            name: Folder name.
            parent_id: Parent folder id (None for My Drive root).

        Returns:
            FolderNode: Created folder.

        Raises:
            FetchError: If the request fails.
        """
        metadata: dict = {"name": name, "mimeType": FOLDER_MIME_TYPE}
        if parent_id:
            metadata["parents"] = [parent_id]

        response = self._make_request(
            "POST", "/files", params={"fields": "id,name,parents"}, json_data=metadata
        )
        parents = response.get("parents") or []
        folder = FolderNode(
            id=response["id"],
            name=response.get("name", name),
            parent_id=parents[0] if parents else parent_id,
        )
        logger.debug(f"Created folder: {name} ({folder.id})")
        return folder

    def rename_node(self, node_id: str, new_name: str) -> FolderNode:
        """Rename a file or folder.

        Args:
            node_id: Drive file id.
            new_name: New name.

        Returns:
            FolderNode: Renamed node.

        Raises:
            FetchError: If the request fails.
        """
        safe_id = quote(node_id, safe="")
        response = self._make_request(
            "PATCH",
            f"/files/{safe_id}",
            params={"fields": "id,name,parents"},
            json_data={"name": new_name},
        )
        parents = response.get("parents") or []
        return FolderNode(
            id=response.get("id", node_id),
            name=response.get("name", new_name),
            parent_id=parents[0] if parents else None,
        )

    def move_node(
        self, node_id: str, destination_id: str, remove_parent: str = "root"
    ) -> None:
        """Re-parent a file or folder.

        Args:
            node_id: Drive file id to move.
            destination_id: New parent folder id.
            remove_parent: Parent to detach from.

        Raises:
            FetchError: If the request fails.
        """
        safe_id = quote(node_id, safe="")
        self._make_request(
            "PATCH",
            f"/files/{safe_id}",
            params={"addParents": destination_id, "removeParents": remove_parent},
        )
        logger.debug(f"Moved {node_id} under {destination_id}")

    def upload_file(
        self,
        parent_id: str,
        name: str,
        content: bytes,
        mime_type: str = "application/octet-stream",
    ) -> DriveFile:
        """Upload a file into a folder with a single multipart request.

        Args:
            parent_id: Destination folder id.
            name: File name.
            content: File content.
            mime_type: Content MIME type.

        Returns:
            DriveFile: Uploaded file metadata.

        Raises:
            FetchError: If the upload fails.
        """
        body, content_type = build_multipart_body(
            {"name": name, "parents": [parent_id]}, content, mime_type
        )
        response = self._make_request(
            "POST",
            "/files",
            params={"uploadType": "multipart", "fields": "id,name,mimeType,parents"},
            data=body,
            headers={"Content-Type": content_type},
            base_url=self.UPLOAD_URL,
        )
        return DriveFile.model_validate(response)

    def _list_paginated(self, query: str, fields: str) -> list[dict]:
        """Collect every page of a ``files.list`` query."""
        items: list[dict] = []
        page_token: Optional[str] = None

        while True:
            params: dict = {
                "q": query,
                "fields": f"nextPageToken,files({fields})",
                "pageSize": 1000,
            }
            if page_token:
                params["pageToken"] = page_token

            response = self._make_request("GET", "/files", params=params)
            items.extend(response.get("files", []))

            page_token = response.get("nextPageToken")
            if not page_token:
                break

        return items

    def list_folders(
        self, name: Optional[str] = None, parent_id: Optional[str] = None
    ) -> list[FolderNode]:
        """List non-trashed folders, optionally filtered.

        Args:
            name: Exact folder name to match.
            parent_id: Restrict to children of this folder.

        Returns:
            list[FolderNode]: Matching folders.
        """
        clauses = [f"mimeType='{FOLDER_MIME_TYPE}'", "trashed=false"]
        if name:
            clauses.append(f"name='{_escape_query_value(name)}'")
        if parent_id:
            clauses.append(f"'{_escape_query_value(parent_id)}' in parents")

        folders = []
        for item in self._list_paginated(" and ".join(clauses), "id,name,parents"):
            parents = item.get("parents") or []
            folders.append(
                FolderNode(
                    id=item["id"],
                    name=item.get("name", ""),
                    parent_id=parents[0] if parents else None,
                )
            )

        logger.debug(f"Found {len(folders)} folders")
        return folders

    def list_files(
        self, parent_id: str, mime_types: Optional[Iterable[str]] = None
    ) -> list[DriveFile]:
        """List non-trashed files in a folder.

        Args:
            parent_id: Folder id.
            mime_types: Restrict to these MIME types.

        Returns:
            list[DriveFile]: Files in the folder.
        """
        clauses = [f"'{_escape_query_value(parent_id)}' in parents", "trashed=false"]
        types = list(mime_types or [])
        if types:
            ors = " or ".join(f"mimeType='{t}'" for t in types)
            clauses.append(f"({ors})")

        items = self._list_paginated(" and ".join(clauses), "id,name,mimeType,parents")
        return [DriveFile.model_validate(item) for item in items]

    def download_file(self, file_id: str) -> bytes:
        """Download file content.

        Args:
            file_id: Drive file id.

        Returns:
            bytes: File content.
        """
        safe_id = quote(file_id, safe="")
        return self._make_request(
            "GET", f"/files/{safe_id}", params={"alt": "media"}, raw=True
        )
