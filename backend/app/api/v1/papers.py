from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, status

from app.core.auth_utils import get_current_user
from app.core.roles import get_caller
from app.models.paper import PaperStatus
from app.schemas.paper import (
    EditorialDecisionCreate,
    PaperRevisionCreate,
    PaperStatusUpdate,
    PaperSubmission,
)
from app.services.paper_service import PaperService

router = APIRouter(prefix="/papers", tags=["Papers"])


def get_paper_service() -> PaperService:
    return PaperService()


@router.post("/upload-url")
async def generate_upload_url(
    caller: dict = Depends(get_caller),
    service: PaperService = Depends(get_paper_service),
):
    """
    两步上传第一步：获取 PDF 直传地址。返回的 file_id 在投稿时回传。
    """
    target = service.create_upload_url(caller=caller)
    return {
        "success": True,
        "data": {
            "upload_url": target.upload_url,
            "file_id": target.file_id,
            "token": target.token,
            "max_bytes": target.max_bytes,
            "content_type": target.content_type,
        },
    }


@router.post("", status_code=status.HTTP_201_CREATED)
async def submit_paper(
    caller: dict = Depends(get_caller),
    req: PaperSubmission = Body(...),
    service: PaperService = Depends(get_paper_service),
):
    """
    投稿（status=submitted, version=1），并通知所有编辑
    """
    paper = service.submit_paper(caller=caller, data=req)
    return {"success": True, "data": paper}


@router.get("")
async def get_papers_by_status(
    status: Optional[PaperStatus] = Query(None),
    caller: dict = Depends(get_caller),
    service: PaperService = Depends(get_paper_service),
):
    """
    稿件列表：编辑/管理员看全部，其他人只看自己投的稿；按投稿时间倒序
    """
    rows = service.list_papers(caller=caller, status=status.value if status else None)
    return {"success": True, "data": rows}


@router.get("/search")
async def search_papers(
    q: str = Query(..., min_length=1, max_length=200),
    category: Optional[str] = Query(None),
    status: Optional[PaperStatus] = Query(None),
    _current_user: dict = Depends(get_current_user),
    service: PaperService = Depends(get_paper_service),
):
    rows = service.search_papers(
        query=q,
        category=(category or "").strip() or None,
        status=status.value if status else None,
    )
    return {"success": True, "data": rows}


@router.get("/{paper_id}")
async def get_paper(
    paper_id: str,
    caller: dict = Depends(get_caller),
    service: PaperService = Depends(get_paper_service),
):
    """
    稿件详情：作者姓名、文件链接、全部审稿（含审稿人姓名）、编辑决定、版本历史
    """
    return {"success": True, "data": service.get_paper(caller=caller, paper_id=paper_id)}


@router.patch("/{paper_id}/status")
async def update_paper_status(
    paper_id: str,
    caller: dict = Depends(get_caller),
    req: PaperStatusUpdate = Body(...),
    service: PaperService = Depends(get_paper_service),
):
    updated = service.update_paper_status(caller=caller, paper_id=paper_id, data=req)
    return {"success": True, "data": updated}


@router.post("/{paper_id}/decisions", status_code=status.HTTP_201_CREATED)
async def record_decision(
    paper_id: str,
    caller: dict = Depends(get_caller),
    req: EditorialDecisionCreate = Body(...),
    service: PaperService = Depends(get_paper_service),
):
    out = service.record_decision(caller=caller, paper_id=paper_id, data=req)
    return {"success": True, "data": out}


@router.post("/{paper_id}/revisions", status_code=status.HTTP_201_CREATED)
async def submit_revision(
    paper_id: str,
    caller: dict = Depends(get_caller),
    req: PaperRevisionCreate = Body(...),
    service: PaperService = Depends(get_paper_service),
):
    """
    作者修回：仅 revision_requested 状态可提交，版本号 +1
    """
    updated = service.submit_revision(caller=caller, paper_id=paper_id, data=req)
    return {"success": True, "data": updated}
