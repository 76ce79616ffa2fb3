from __future__ import annotations

from botocore.exceptions import ClientError

from .errors import ProviderError


def map_client_error(err: ClientError) -> ProviderError:
    code = str(err.response.get("Error", {}).get("Code", ""))
    message = str(err.response.get("Error", {}).get("Message", ""))

    return ProviderError(code=code or "UnknownError", message=message or str(err))
