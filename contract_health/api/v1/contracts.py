from fastapi import APIRouter, Depends, File, Header, Request, UploadFile

from contract_health.api.dependencies import get_contract_service
from contract_health.core.config import settings
from contract_health.core.errors import UnsupportedDocumentError
from contract_health.core.rate_limit import rate_limit
from contract_health.core.security import check_api_key
from contract_health.schemas.contracts import (
    ContractDetailResponse,
    ContractListResponse,
    CounterpartyUpdateRequest,
    CounterpartyUpdateResponse,
    DeleteResponse,
    ReplaceResponse,
    UploadResponse,
)
from contract_health.services.contract_service import ContractService

router = APIRouter()

UPLOAD_CHUNK_BYTES = 64 * 1024


def _auth(x_api_key: str | None = Header(default=None, alias="X-API-Key")):
    check_api_key(x_api_key)


async def _read_upload(file: UploadFile) -> tuple[str, bytes]:
    filename = (file.filename or "").strip()
    if not filename:
        raise UnsupportedDocumentError("No file uploaded.")

    chunks: list[bytes] = []
    total = 0
    while True:
        chunk = await file.read(UPLOAD_CHUNK_BYTES)
        if not chunk:
            break
        total += len(chunk)
        if total > settings.max_upload_bytes:
            raise UnsupportedDocumentError(
                f"File too large. Max size is {settings.max_upload_bytes // (1024 * 1024)} MB.",
                status_code=413,
            )
        chunks.append(chunk)
    return filename, b"".join(chunks)


@router.post("/upload", response_model=UploadResponse, dependencies=[Depends(_auth)])
@rate_limit()
async def upload_contract(
    request: Request,
    file: UploadFile = File(...),
    service: ContractService = Depends(get_contract_service),
):
    _ = request
    filename, content = await _read_upload(file)
    outcome = await service.upload(filename, content)
    message = "This file has already been uploaded." if outcome.duplicate else "Contract analysed."
    return UploadResponse(duplicate=outcome.duplicate, message=message, contract=outcome.record)


@router.get("/contracts", response_model=ContractListResponse)
async def list_contracts(service: ContractService = Depends(get_contract_service)):
    return ContractListResponse(contracts=service.list_contracts())


@router.get("/contracts/{contract_id}", response_model=ContractDetailResponse)
async def get_contract(contract_id: str, service: ContractService = Depends(get_contract_service)):
    return ContractDetailResponse(contract=service.get(contract_id))


@router.put(
    "/contracts/{contract_id}/counterparty",
    response_model=CounterpartyUpdateResponse,
    dependencies=[Depends(_auth)],
)
@rate_limit()
async def update_counterparty(
    request: Request,
    contract_id: str,
    payload: CounterpartyUpdateRequest,
    service: ContractService = Depends(get_contract_service),
):
    _ = request
    outcome = await service.update_counterparty(contract_id, payload.seller_company)
    return CounterpartyUpdateResponse(rescored=outcome.rescored, contract=outcome.record)


@router.post(
    "/contracts/{contract_id}/replace",
    response_model=ReplaceResponse,
    dependencies=[Depends(_auth)],
)
@rate_limit()
async def replace_contract(
    request: Request,
    contract_id: str,
    file: UploadFile = File(...),
    service: ContractService = Depends(get_contract_service),
):
    _ = request
    filename, content = await _read_upload(file)
    outcome = await service.replace(contract_id, filename, content)
    if outcome.replaced:
        message = "Contract replaced."
    else:
        message = "This file has already been uploaded."
    return ReplaceResponse(
        duplicate=outcome.duplicate,
        replaced=outcome.replaced,
        message=message,
        contract=outcome.record,
    )


@router.delete("/contracts/{contract_id}", response_model=DeleteResponse, dependencies=[Depends(_auth)])
@rate_limit()
async def delete_contract(
    request: Request,
    contract_id: str,
    service: ContractService = Depends(get_contract_service),
):
    _ = request
    service.delete(contract_id)
    return DeleteResponse(message=f"Contract '{contract_id}' deleted.")
