# app_diagrams.py
"""
Diagram API - document store endpoints for dual flow diagrams

POST   /api/diagrams            create (no id) or update (with id)
GET    /api/diagrams[?id=X]     list summaries, or read one diagram
GET    /api/diagrams/{id}       read one diagram
DELETE /api/diagrams[?id=X]     delete one diagram
DELETE /api/diagrams/{id}       delete one diagram
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from dualflow.diagram.models import DeleteDiagramResponse, SaveDiagramRequest, SaveDiagramResponse
from dualflow.flow_logging import get_logger
from dualflow.persistence.base import DiagramGateway, DiagramNotFoundError, GatewayUnavailableError

logger = get_logger(__name__)

diagram_router = APIRouter()


def get_gateway(request: Request) -> DiagramGateway:
    """Gateway installed on the application by FlowApp"""
    return request.app.state.gateway


@diagram_router.post("/diagrams")
async def save_diagram(body: SaveDiagramRequest, gateway: DiagramGateway = Depends(get_gateway)):
    """
    Save a diagram snapshot

    Without an id a new diagram is created; with an id the stored name and
    data are replaced wholesale.

    Returns:
        {"id": ...} of the created or updated diagram
    """
    data = body.data.to_wire(exclude_unset=True)
    try:
        if body.id:
            await gateway.update(body.id, body.name, data)
            diagram_id = body.id
        else:
            diagram_id = await gateway.create(body.name, data)

        logger.info(f"Saved diagram {body.name}", extra={'diagram_id': diagram_id})
        return JSONResponse(content=SaveDiagramResponse(id=diagram_id).to_wire())

    except DiagramNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except GatewayUnavailableError as e:
        logger.error(f"Failed to save diagram {body.name}: {e}")
        raise HTTPException(status_code=503, detail=str(e))


@diagram_router.get("/diagrams")
async def list_or_read_diagrams(id: Optional[str] = Query(None, description="Diagram to read"),
                                gateway: DiagramGateway = Depends(get_gateway)):
    """List diagram summaries, most recently updated first, or read one with ?id="""
    if id:
        return await _read(gateway, id)

    try:
        summaries = await gateway.list()
        return JSONResponse(content=[summary.to_wire() for summary in summaries])

    except GatewayUnavailableError as e:
        logger.error(f"Failed to list diagrams: {e}")
        raise HTTPException(status_code=503, detail=str(e))


@diagram_router.get("/diagrams/{diagram_id}")
async def get_diagram(diagram_id: str, gateway: DiagramGateway = Depends(get_gateway)):
    return await _read(gateway, diagram_id)


@diagram_router.delete("/diagrams")
async def delete_diagram_by_query(id: Optional[str] = Query(None, description="Diagram to delete"),
                                  gateway: DiagramGateway = Depends(get_gateway)):
    if not id:
        raise HTTPException(status_code=400, detail="Diagram id is required")
    return await _delete(gateway, id)


@diagram_router.delete("/diagrams/{diagram_id}")
async def delete_diagram(diagram_id: str, gateway: DiagramGateway = Depends(get_gateway)):
    return await _delete(gateway, diagram_id)


async def _read(gateway: DiagramGateway, diagram_id: str) -> JSONResponse:
    try:
        record = await gateway.read(diagram_id)
        return JSONResponse(content=record.to_wire())

    except DiagramNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except GatewayUnavailableError as e:
        logger.error(f"Failed to read diagram {diagram_id}: {e}")
        raise HTTPException(status_code=503, detail=str(e))


async def _delete(gateway: DiagramGateway, diagram_id: str) -> JSONResponse:
    try:
        await gateway.delete(diagram_id)
        logger.info(f"Deleted diagram {diagram_id}", extra={'diagram_id': diagram_id})
        return JSONResponse(content=DeleteDiagramResponse().to_wire())

    except DiagramNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except GatewayUnavailableError as e:
        logger.error(f"Failed to delete diagram {diagram_id}: {e}")
        raise HTTPException(status_code=503, detail=str(e))
