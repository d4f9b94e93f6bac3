"""
API HTTP do sincronizador de NF-e (FastAPI).

Rotas (POST, corpo JSON):
    /import-xml-data      {"xml_content", "user_id"}       -> {"message"} | {"error"}
    /importar-xml-chave   {"chaveAcesso"}                  -> {"message"} | {"error"}
    /fetch-sheet-data     {"sheet_name"}                   -> {"data"}    | {"error"}
    /update-sheet-data    {"sheet_name", "range", "value"} -> {"message"} | {"error"}
    /clear-sheet-data     {"sheet_name", "range"}          -> {"message"} | {"error"}

Falhas do domínio (NfeSheetsError) viram {"error": "..."} com status pela
categoria: entrada 400, não encontrado 404, infraestrutura 500, timeout 504.
Se o cliente desconectar, o fluxo em andamento é sinalizado para parar.
"""
import asyncio
import logging
import threading
from typing import Callable, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from core.exceptions import NfeSheetsError
from services.sync_service import NfeSyncService, SyncResult

logger = logging.getLogger(__name__)

STATUS_POR_CATEGORIA = {
    'entrada': 400,
    'nao_encontrado': 404,
    'infraestrutura': 500,
    'timeout': 504,
    'cancelado': 499,
}

INVALID_JSON_MESSAGE = "Formato de requisição JSON inválido."

# Intervalo de verificação de desconexão do cliente (segundos)
DISCONNECT_POLL_SECONDS = 0.5


# --- Modelos de requisição ---

class ImportRequest(BaseModel):
    """Importação de XML por arquivo (conteúdo enviado pelo frontend)."""
    xml_content: str
    user_id: str = ""


class ImportChaveRequest(BaseModel):
    chave_acesso: str = Field(alias="chaveAcesso")


class SheetFetchRequest(BaseModel):
    sheet_name: str


class SheetUpdateRequest(BaseModel):
    sheet_name: str
    cell_range: str = Field(alias="range")  # Ex: "A2"
    value: str = ""


class SheetClearRequest(BaseModel):
    sheet_name: str
    cell_range: str = Field(alias="range")  # Ex: "A2:Z"


def error_response(error: NfeSheetsError, prefixo: str = "") -> JSONResponse:
    """Converte uma falha do domínio em resposta JSON com status da categoria."""
    status = STATUS_POR_CATEGORIA.get(error.categoria, 500)
    return JSONResponse(status_code=status, content={"error": f"{prefixo}{error}"})


async def run_flow(request: Request, func: Callable[..., SyncResult], *args) -> SyncResult:
    """
    Executa um fluxo bloqueante no threadpool observando a conexão do cliente.

    Args:
        request: Requisição em andamento
        func: Método do NfeSyncService (recebe cancel_event como keyword)
        *args: Argumentos posicionais do método

    Returns:
        SyncResult do fluxo
    """
    cancel_event = threading.Event()
    task = asyncio.ensure_future(run_in_threadpool(func, *args, cancel_event=cancel_event))

    while not task.done():
        done, _ = await asyncio.wait({task}, timeout=DISCONNECT_POLL_SECONDS)
        if done:
            break
        if await request.is_disconnected():
            logger.warning(f"Cliente desconectou durante {request.url.path}")
            cancel_event.set()

    return await task


def create_app(service: NfeSyncService, allowed_origins: Optional[list] = None) -> FastAPI:
    """
    Cria a aplicação FastAPI ligada a um NfeSyncService.

    Args:
        service: Orquestrador compartilhado por todas as requisições
        allowed_origins: Origens CORS permitidas (padrão: todas)

    Returns:
        FastAPI: Aplicação pronta para o uvicorn
    """
    app = FastAPI(
        title="NFe Sheets API",
        description="Importação de NF-e (XML) para o Google Sheets",
    )
    app.state.service = service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins or ["*"],
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Accept", "Authorization", "Content-Type", "X-CSRF-Token"],
    )

    @app.exception_handler(RequestValidationError)
    async def invalid_request_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"Requisição inválida em {request.url.path}: {exc.errors()}")
        return JSONResponse(status_code=400, content={"error": INVALID_JSON_MESSAGE})

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception(f"Erro inesperado em {request.url.path}")
        return JSONResponse(status_code=500, content={"error": "Erro interno do servidor."})

    @app.get("/health")
    async def health() -> Dict[str, str]:
        return {"status": "ok"}

    @app.post("/import-xml-data")
    async def import_xml_data(body: ImportRequest, request: Request):
        try:
            result = await run_flow(
                request, service.import_xml_content, body.xml_content, body.user_id
            )
        except NfeSheetsError as e:
            if e.etapa == "planilha":
                return error_response(
                    e,
                    "Erro ao comunicar com o Google Sheets. Verifique as permissões de acesso: ",
                )
            return error_response(e)
        return {"message": result.message}

    @app.post("/importar-xml-chave")
    async def importar_xml_chave(body: ImportChaveRequest, request: Request):
        try:
            result = await run_flow(request, service.import_by_key, body.chave_acesso)
        except NfeSheetsError as e:
            prefixos = {
                "busca": "Erro na busca do XML: ",
                "extracao": "Erro ao processar XML baixado: ",
                "planilha": "Erro ao comunicar com o Google Sheets: ",
            }
            return error_response(e, prefixos.get(e.etapa, ""))
        return {"message": result.message}

    @app.post("/fetch-sheet-data")
    async def fetch_sheet_data(body: SheetFetchRequest, request: Request):
        try:
            result = await run_flow(request, service.read_sheet, body.sheet_name)
        except NfeSheetsError as e:
            return error_response(e, "Falha ao buscar dados do Google Sheets: ")
        return {"data": result.data}

    @app.post("/update-sheet-data")
    async def update_sheet_data(body: SheetUpdateRequest, request: Request):
        try:
            result = await run_flow(
                request, service.update_cell, body.sheet_name, body.cell_range, body.value
            )
        except NfeSheetsError as e:
            return error_response(e, "Falha ao atualizar Google Sheets: ")
        return {"message": result.message}

    @app.post("/clear-sheet-data")
    async def clear_sheet_data(body: SheetClearRequest, request: Request):
        try:
            result = await run_flow(
                request, service.clear_sheet, body.sheet_name, body.cell_range
            )
        except NfeSheetsError as e:
            return error_response(e, "Falha ao limpar dados do Google Sheets: ")
        return {"message": result.message}

    return app
