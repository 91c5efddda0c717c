"""HTTP routes of the wiki.

The route table recognizes exactly `/view/<title>`, `/edit/<title>` and
`/save/<title>` plus the root redirect. Titles are checked once, by the
`valid_title` dependency; handlers trust what they receive. Store
failures other than a missing page end the request with a 500 carrying
the error message.
"""

from fastapi import APIRouter, Depends, Form, HTTPException, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from sqlmodel import Session

from . import models
from .database import get_session
from .errors import PageError, PageNotFound
from .models import TITLE_PATTERN
from .repositories import PageRepository

router = APIRouter()


def valid_title(title: str) -> str:
    """Path dependency: pass legal titles through, answer 404 otherwise."""
    if not TITLE_PATTERN.fullmatch(title):
        raise HTTPException(status_code=404, detail="Not Found")
    return title


def get_page_repository(db: Session = Depends(get_session)) -> PageRepository:
    return PageRepository(db)


def _render(request: Request, name: str, page: models.Page):
    templates = request.app.state.templates
    return templates.TemplateResponse(request, f"{name}.html", {"page": page})


def _found(url: str) -> RedirectResponse:
    return RedirectResponse(url=url, status_code=302)


@router.api_route("/", methods=["GET", "HEAD"])
def front_page(request: Request):
    """Redirect to the configured front page."""
    return _found(f"/view/{request.app.state.settings.FRONT_PAGE}")


@router.get("/view/{title}", response_class=HTMLResponse)
def view_page(request: Request, page_title: str = Depends(valid_title),
              pages: PageRepository = Depends(get_page_repository)):
    """Render a page, or send the browser to its edit form if it does not exist yet."""
    try:
        page = pages.load(page_title)
    except PageNotFound:
        return _found(f"/edit/{page_title}")
    except PageError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return _render(request, "view", page)


@router.get("/edit/{title}", response_class=HTMLResponse)
def edit_page(request: Request, page_title: str = Depends(valid_title),
              pages: PageRepository = Depends(get_page_repository)):
    """Render the edit form; a missing page starts out empty."""
    try:
        page = pages.load(page_title)
    except PageNotFound:
        page = models.Page(title=page_title, body=b"")
    except PageError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return _render(request, "edit", page)


@router.post("/save/{title}")
def save_page(page_title: str = Depends(valid_title), body: str = Form(default=""),
              pages: PageRepository = Depends(get_page_repository)):
    """Store the submitted form body under `title` and redirect to the page."""
    page = models.Page(title=page_title, body=body.encode("utf-8"))
    try:
        pages.save(page)
    except PageError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return _found(f"/view/{page_title}")
