"""Record read endpoints — cache-first test, process and function loading."""

from fastapi import APIRouter, Depends, HTTPException, status

from recordsync.application.schemas import (
    FunctionResponse,
    ProcessListResponse,
    ProcessResponse,
    TestResponse,
)
from recordsync.application.services import RecordLoader
from recordsync.domain.exceptions import EntityNotFoundError, StoreUnavailableError
from recordsync.infrastructure.dependencies import get_loader

router = APIRouter(prefix="/records", tags=["Records"])


@router.get("/tests/{test_id}", response_model=TestResponse)
async def get_test(
    test_id: int,
    loader: RecordLoader = Depends(get_loader),
) -> TestResponse:
    """Retrieve a single test definition by id."""
    try:
        test = await loader.load_test(test_id)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except StoreUnavailableError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    return TestResponse.model_validate(test, from_attributes=True)


@router.get("/processes", response_model=ProcessListResponse)
async def list_processes(
    loader: RecordLoader = Depends(get_loader),
) -> ProcessListResponse:
    """All processes; served from the shared cache once it is warm."""
    try:
        processes, from_cache = await loader.load_processes()
    except StoreUnavailableError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    return ProcessListResponse(
        items=[ProcessResponse.model_validate(p, from_attributes=True) for p in processes],
        total=len(processes),
        from_cache=from_cache,
    )


@router.get("/processes/{process_id}/functions", response_model=list[FunctionResponse])
async def list_functions(
    process_id: float,
    loader: RecordLoader = Depends(get_loader),
) -> list[FunctionResponse]:
    """Functions of one process, ordered by position (lazy group load)."""
    try:
        functions = await loader.load_functions(process_id)
    except StoreUnavailableError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    return [FunctionResponse.model_validate(f, from_attributes=True) for f in functions]
