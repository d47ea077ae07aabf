"""
导出 API：按会话类型输出 CSV 附件。
"""

from fastapi import APIRouter, Depends, HTTPException, Response

from genfuze.api.deps import get_current_user, store_dep
from genfuze.api.routes_sessions import check_session_type
from genfuze.auth.tokens import CurrentUser
from genfuze.export import export_filename, sessions_to_csv
from genfuze.log import get_logger
from genfuze.storage import SessionStore

logger = get_logger(__name__)

router = APIRouter(prefix="/api/export", tags=["export"])


@router.get("/{session_type}/csv")
def export_csv(
    session_type: str,
    user: CurrentUser = Depends(get_current_user),
    store: SessionStore = Depends(store_dep),
) -> Response:
    check_session_type(session_type)
    sessions = store.list_sessions(session_type, user.id)
    if not sessions:
        raise HTTPException(status_code=404, detail="No sessions found to export")

    filename = export_filename(session_type)
    logger.info("[export] %d %s sessions -> %s", len(sessions), session_type, filename)
    return Response(
        content=sessions_to_csv(sessions),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
