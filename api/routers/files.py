"""File uploads router"""
from typing import Dict, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from api.core import RouterConfig
from api.utils.responses import created, success
from core.errors import forbidden
from services import file_upload_service

router = APIRouter(prefix="/api/files", tags=["files"])


def setup_routes(cfg: RouterConfig):

    @router.post("/{bucket}")
    async def upload(bucket: str, file: UploadFile = File(...), folder: Optional[str] = Form(None),
                     user: Dict = Depends(cfg.get_current_user)):
        return created(await file_upload_service.upload_file(bucket, user["id"], file, folder), "File uploaded")

    @router.delete("/{bucket}/{path:path}")
    async def delete(bucket: str, path: str, user: Dict = Depends(cfg.get_current_user)):
        # Stored names start with the uploader's id
        if user.get("role") != "admin" and not path.rsplit("/", 1)[-1].startswith(f"{user['id']}-"):
            raise forbidden("You can only delete your own files")
        return success({"deleted": await file_upload_service.delete_file(bucket, path)})

    return router
