from fastapi import APIRouter, Depends

from app.api.v1.papers import get_paper_service
from app.api.v1.reviews import get_review_service
from app.core.roles import get_caller
from app.models.paper import PaperStatus
from app.models.reviews import ReviewStatus
from app.services.paper_service import PaperService
from app.services.review_service import ReviewService

router = APIRouter(prefix="/stats", tags=["Dashboard Statistics"])


def _count(rows: list[dict], value: str) -> int:
    return sum(1 for r in rows if r.get("status") == value)


@router.get("/dashboard")
async def get_dashboard_stats(
    caller: dict = Depends(get_caller),
    paper_service: PaperService = Depends(get_paper_service),
    review_service: ReviewService = Depends(get_review_service),
):
    """
    仪表盘统计：当前用户可见稿件 + 我的审稿任务，按状态计数
    """
    papers = paper_service.list_papers(caller=caller)
    reviews = review_service.list_my_reviews(caller=caller)
    return {
        "success": True,
        "data": {
            "papers": {
                "total": len(papers),
                "submitted": _count(papers, PaperStatus.SUBMITTED.value),
                "under_review": _count(papers, PaperStatus.UNDER_REVIEW.value),
                "accepted": _count(papers, PaperStatus.ACCEPTED.value),
                "published": _count(papers, PaperStatus.PUBLISHED.value),
            },
            "reviews": {
                "total": len(reviews),
                "assigned": _count(reviews, ReviewStatus.ASSIGNED.value),
                "in_progress": _count(reviews, ReviewStatus.IN_PROGRESS.value),
                "completed": _count(reviews, ReviewStatus.COMPLETED.value),
            },
        },
    }
