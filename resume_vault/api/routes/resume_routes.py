"""
Resume Routes

POST   /resumes               - Upload a PDF resume (authenticated)
GET    /resumes/search        - Search active resumes
GET    /resumes/filters       - Distinct filter values
GET    /resumes/{id}/file     - Stream the PDF
GET    /resumes/{id}          - Resume detail
PUT    /resumes/{id}          - Update (owner or admin)
DELETE /resumes/all/delete    - Soft delete everything (admin)
DELETE /resumes/{id}          - Soft delete one (owner or admin)
"""

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, Query, Request, UploadFile
from fastapi.responses import StreamingResponse
from starlette.concurrency import run_in_threadpool

from resume_vault.api.deps import (
    get_cleanup_queue,
    get_file_delivery,
    get_ingestion_orchestrator,
    get_resume_service,
    get_search_compiler,
)
from resume_vault.core.auth import Principal, get_current_admin, get_current_principal
from resume_vault.core.config import get_settings
from resume_vault.schemas.schemas import (
    DeleteAllResponse,
    DeletedCount,
    ErrorResponse,
    FiltersResponse,
    MessageResponse,
    ResumeResponse,
    ResumeUpdate,
    SearchResponse,
    UpdateResponse,
    UploadedResume,
    UploadResponse,
)
from resume_vault.services.blob_cleanup import BlobCleanupQueue
from resume_vault.services.file_delivery import FileDelivery, file_url
from resume_vault.services.ingestion import IngestionOrchestrator, UploadRequest
from resume_vault.services.resume_service import ResumeService
from resume_vault.services.search import SearchCompiler, SearchFilters
from resume_vault.utils.file_upload import read_upload, split_csv

router = APIRouter(
    prefix="/resumes",
    tags=["Resumes"],
    responses={code: {"model": ErrorResponse} for code in (400, 403, 404, 500)},
)


def _base_url(request: Request) -> str:
    return str(request.base_url).rstrip("/")


@router.post("", response_model=UploadResponse, status_code=201)
async def upload_resume(
    request: Request,
    file: Optional[UploadFile] = File(None, description="Resume PDF"),
    name: Optional[str] = Form(None),
    major: Optional[str] = Form(None),
    graduationYear: Optional[str] = Form(None),
    companies: Optional[str] = Form(None, description="Comma separated"),
    keywords: Optional[str] = Form(None, description="Comma separated"),
    principal: Principal = Depends(get_current_principal),
    orchestrator: IngestionOrchestrator = Depends(get_ingestion_orchestrator),
):
    """
    Upload a resume PDF.

    Form fields override whatever is extracted from the PDF. If extraction
    fails the upload still succeeds and data.parsingWarning explains why.
    """
    content = await read_upload(file, get_settings().max_upload_bytes)
    upload = UploadRequest(
        content=content,
        filename=file.filename if file is not None else None,
        uploaded_by=principal.id,
        name=name,
        major=major,
        graduation_year=graduationYear,
        companies=split_csv(companies),
        keywords=split_csv(keywords),
    )
    result = await run_in_threadpool(orchestrator.ingest, upload)

    return UploadResponse(
        message=f'Resume "{file.filename}" uploaded successfully.',
        data=UploadedResume(
            id=result.id,
            name=result.name,
            major=result.major,
            graduation_year=result.graduation_year,
            file_url=file_url(result.id, _base_url(request)),
            companies=result.companies,
            keywords=result.keywords,
            parsing_warning=result.parsing_warning,
            created_at=result.created_at,
        ),
    )


@router.get("/search", response_model=SearchResponse)
def search_resumes(
    request: Request,
    query: Optional[str] = Query(None, description="Free text over name, major, year and tags"),
    name: Optional[str] = Query(None),
    major: Optional[str] = Query(None, description="Comma separated"),
    company: Optional[str] = Query(None, description="Comma separated"),
    graduationYear: Optional[str] = Query(None, description="Comma separated"),
    keyword: Optional[str] = Query(None, description="Comma separated"),
    compiler: SearchCompiler = Depends(get_search_compiler),
):
    """Search active resumes, most recent first."""
    filters = SearchFilters(
        query=query,
        name=name,
        major=major,
        graduation_year=graduationYear,
        company=company,
        keyword=keyword,
    )
    results = compiler.search(filters, base_url=_base_url(request))
    return SearchResponse(count=len(results), data=results)


@router.get("/filters", response_model=FiltersResponse)
def get_filters(compiler: SearchCompiler = Depends(get_search_compiler)):
    """Majors, graduation years, companies and keywords present on active resumes."""
    return FiltersResponse(data=compiler.available_filters())


@router.get("/{resume_id}/file", name="get_resume_file")
def get_resume_file(resume_id: str, delivery: FileDelivery = Depends(get_file_delivery)):
    """Stream the stored PDF inline."""
    download = delivery.open(resume_id)
    return StreamingResponse(download.chunks, media_type=download.media_type, headers=download.headers)


@router.get("/{resume_id}", response_model=ResumeResponse)
def get_resume(request: Request, resume_id: str, service: ResumeService = Depends(get_resume_service)):
    """Get details of a specific resume."""
    return ResumeResponse(data=service.get_detail(resume_id, base_url=_base_url(request)))


@router.put("/{resume_id}", response_model=UpdateResponse)
def update_resume(
    request: Request,
    resume_id: str,
    payload: ResumeUpdate,
    principal: Principal = Depends(get_current_principal),
    service: ResumeService = Depends(get_resume_service),
):
    """Update a resume. Only the uploader or an admin can update."""
    summary = service.update(
        resume_id,
        principal,
        name=payload.name,
        major=payload.major,
        graduation_year=payload.graduation_year,
        companies=split_csv(payload.companies) if payload.companies else None,
        keywords=split_csv(payload.keywords) if payload.keywords else None,
        base_url=_base_url(request),
    )
    return UpdateResponse(message="Resume updated successfully.", data=summary)


@router.delete("/all/delete", response_model=DeleteAllResponse)
def delete_all_resumes(
    background_tasks: BackgroundTasks,
    principal: Principal = Depends(get_current_admin),
    service: ResumeService = Depends(get_resume_service),
    cleanup: BlobCleanupQueue = Depends(get_cleanup_queue),
):
    """Soft delete every active resume. Admins only."""
    blob_ids = service.soft_delete_all(principal)
    background_tasks.add_task(cleanup.drain, blob_ids)
    return DeleteAllResponse(
        message=f"Successfully deleted {len(blob_ids)} resumes.",
        data=DeletedCount(deleted=len(blob_ids)),
    )


@router.delete("/{resume_id}", response_model=MessageResponse)
def delete_resume(
    resume_id: str,
    background_tasks: BackgroundTasks,
    principal: Principal = Depends(get_current_principal),
    service: ResumeService = Depends(get_resume_service),
    cleanup: BlobCleanupQueue = Depends(get_cleanup_queue),
):
    """Soft delete a resume. The PDF is removed after the response is sent."""
    blob_id = service.soft_delete(resume_id, principal)
    background_tasks.add_task(cleanup.drain, [blob_id])
    return MessageResponse(message="Resume deleted successfully.")
