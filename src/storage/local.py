import os

from .base import BaseStorage


class LocalStorage(BaseStorage):
    """A client for interacting with local filesystem storage."""

    def __init__(self, base_dir: str = "data/storage"):
        self.base_dir = base_dir

    def _path(self, workspace: str, filename: str) -> str:
        return os.path.join(self.base_dir, workspace.strip("/"), filename)

    def file_exist(self, workspace: str, filename: str) -> bool:
        """
        Check if a file exists in local storage

        Args:
            workspace (str): The workspace (prefix) path.
            filename (str): The name of the file.

        Returns:
            bool: True if the file exists, False otherwise.
        """
        return os.path.isfile(self._path(workspace, filename))

    def _get_absolute_filename(self, workspace: str, filename: str) -> str:
        """Constructs the absolute filename in local storage."""
        return os.path.abspath(self._path(workspace, filename))

    def save_file(
        self,
        workspace: str,
        filename: str,
        content: bytes,
        content_type: str = "application/pdf",
    ) -> str:
        """Saves bytes to the specified workspace in local storage.

        Returns:
            str: The full path of the saved file on local filesystem.
        """
        filepath = self._path(workspace, filename)
        try:
            os.makedirs(os.path.dirname(filepath), exist_ok=True)
            # "xb" refuses to replace a file created since the existence check
            with open(filepath, "xb") as file:
                file.write(content)
        except FileExistsError:
            pass
        except OSError as e:
            raise RuntimeError(f"Error saving file to local storage: {e}")

        return os.path.abspath(filepath)
