"""
Spreadsheet import API routes.

One upload endpoint serves every registered entity; the entity name in
the path selects the alias table, field types and natural key.
"""

from fastapi import APIRouter, File, Query, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from io import BytesIO
import structlog

from models.imports import EntitySchemaResponse, ImportResult
from models.entity import EntitySchema
from parsers.excel_parser import is_valid_excel_file
from services.entity_catalog import get_entity_schema, list_entity_schemas
from services.import_service import get_import_service
from exceptions import AppError, InvalidFileTypeError

logger = structlog.get_logger(__name__)

router = APIRouter()


# ===================
# EXCEPTION HANDLER
# ===================

def handle_error(e: Exception) -> JSONResponse:
    """Convert exception to JSON response."""
    if isinstance(e, AppError):
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_dict()
        )
    logger.error("unexpected_error", error=str(e), type=type(e).__name__)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred"
            }
        }
    )


def _describe(schema: EntitySchema) -> EntitySchemaResponse:
    return EntitySchemaResponse(
        name=schema.name,
        table=schema.table,
        natural_key=list(schema.natural_key),
        required_fields=list(schema.all_required_fields),
        date_fields=sorted(schema.date_fields),
        numeric_fields=sorted(schema.numeric_fields),
        aliases={field: list(spellings) for field, spellings in schema.aliases.items()},
    )


# ===================
# ROUTES
# ===================

@router.get("", response_model=list[EntitySchemaResponse])
async def list_import_entities():
    """List importable entities with their recognised column spellings."""
    return [_describe(schema) for schema in list_entity_schemas()]


@router.get("/{entity}", response_model=EntitySchemaResponse)
async def get_import_entity(entity: str):
    """Describe one importable entity."""
    try:
        return _describe(get_entity_schema(entity))
    except Exception as e:
        return handle_error(e)


@router.post("/{entity}", response_model=ImportResult)
async def upload_import_file(
    entity: str,
    file: UploadFile = File(...),
    start_chunk: int = Query(0, ge=0, description="Resume from this chunk of a failed run"),
):
    """
    Import an Excel file for an entity.

    Rows are matched to fields by header, deduplicated on the natural key
    and upserted in chunks. A failing chunk stops the run; the result then
    carries the store's error message and the chunk to resume from.

    Raises:
        404: Unknown entity
        422: Not an Excel file, empty file, or required columns missing
    """
    logger.info(
        "import_upload_started",
        entity=entity,
        filename=file.filename,
        content_type=file.content_type,
        start_chunk=start_chunk
    )

    try:
        schema = get_entity_schema(entity)

        if not is_valid_excel_file(file.filename):
            raise InvalidFileTypeError(file.filename)

        content = await file.read()

        service = get_import_service()
        # Parsing and upserts block; keep them off the event loop
        result = await run_in_threadpool(
            service.import_file,
            schema.name,
            BytesIO(content),
            filename=file.filename,
            start_chunk=start_chunk,
        )

        logger.info(
            "import_upload_completed",
            entity=schema.name,
            success=result.success,
            accepted=result.records_accepted
        )

        return result

    except Exception as e:
        logger.error("import_upload_failed", entity=entity, error=str(e))
        return handle_error(e)
