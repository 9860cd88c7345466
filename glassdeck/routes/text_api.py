import logging
from typing import Optional
from fastapi import APIRouter, Depends, File, Form, UploadFile
from ..config import settings
from ..deps import AppContext, current_session, get_context
from ..errors import ResourceNotFound, ValidationFailure
from ..session import SessionState
from ..text_pager import TextPager, format_markdown

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


def _file_type(filename: str) -> str:
    name = filename.lower()
    if name.endswith((".md", ".markdown")):
        return "markdown"
    if name.endswith(".csv"):
        return "csv"
    return "text"


@router.post("/upload-text")
async def upload_text(
    file: Optional[UploadFile] = File(None),
    text: Optional[str] = Form(None),
    file_type: str = Form("text", alias="fileType"),
    state: SessionState = Depends(current_session),
    ctx: AppContext = Depends(get_context),
):
    if file is not None:
        try:
            content = (await file.read()).decode("utf-8")
        except UnicodeDecodeError as e:
            raise ValidationFailure("Uploaded file is not UTF-8 text") from e
        file_type = _file_type(file.filename or "")
    elif text:
        content = text
    else:
        raise ValidationFailure("A file or text is required")

    if file_type == "markdown":
        content = format_markdown(content)

    state.text = content
    state.file_type = file_type
    state.pager = TextPager(content, settings.PAGE_MAX_CHARS)
    logger.info(f"Loaded {len(content)} chars ({file_type}) into {state.pager.total_pages} pages for {state.session_id}")

    await ctx.engine.show_page(state)
    return {
        "success": True,
        "textLength": len(content),
        "totalPages": state.pager.total_pages,
        "currentPage": state.pager.page_number,
    }


@router.get("/text")
def get_text(state: SessionState = Depends(current_session)):
    if not state.text:
        raise ResourceNotFound("No text has been uploaded")
    return {"success": True, "text": state.text, "fileType": state.file_type}


@router.get("/text/current")
def get_current_page(state: SessionState = Depends(current_session)):
    if state.pager is None:
        raise ResourceNotFound("No page data")
    return {
        "success": True,
        "text": state.pager.display_text(),
        "pageInfo": {
            "currentPage": state.pager.page_number,
            "totalPages": state.pager.total_pages,
            "pageInfo": state.pager.page_info,
        },
    }
