from fastapi import Request
from starlette.datastructures import FormData

from bucket_proxy.services.storage import StorageService


def get_storage(request: Request) -> StorageService:
    return request.app.state.storage


async def get_form(request: Request) -> FormData:
    """Merge body form fields and query parameters, body values first."""
    form = await request.form()
    items = list(form.multi_items()) + list(request.query_params.multi_items())
    return FormData(items)
