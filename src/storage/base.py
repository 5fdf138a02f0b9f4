from abc import ABC, abstractmethod


class BaseStorage(ABC):
    """
    Abstract base class for storage interface.

    This class defines the common interface for both local and cloud storage
    implementations. Files live under a workspace (prefix) such as
    "internet_archive/".
    """

    @abstractmethod
    def file_exist(self, workspace: str, filename: str) -> bool:
        """
        Check if a file exists.

        Args:
            workspace (str): The workspace (prefix) path.
            filename (str): The name of the file.

        Returns:
            bool: True if the file exists, False otherwise.
        """

    @abstractmethod
    def save_file(
        self,
        workspace: str,
        filename: str,
        content: bytes,
        content_type: str = "application/pdf",
    ) -> str:
        """Saves a file to the specified workspace.

        Args:
            workspace (str): The workspace (prefix) path.
            filename (str): The name of the file to save.
            content (bytes): The content to save.
            content_type (str): MIME type recorded with the object, if supported.

        Returns:
            str: The full path or URL of the saved file.

        Raises:
            RuntimeError: If file saving fails.
        """
        pass

    def get_url(self, workspace: str, filename: str) -> str:
        """Public path or URL of a stored file."""
        return self._get_absolute_filename(workspace, filename)

    @abstractmethod
    def _get_absolute_filename(self, workspace: str, filename: str) -> str:
        """Constructs the absolute filename/path.

        Args:
            workspace (str): The workspace (prefix) path.
            filename (str): The name of the file.

        Returns:
            str: The absolute filename/path.
        """
        pass
