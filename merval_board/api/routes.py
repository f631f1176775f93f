from fastapi import APIRouter, HTTPException, Request

from merval_board.schemas.board import BoardSnapshot, RefreshAccepted
from merval_board.schemas.quote import Instrument

router = APIRouter()


@router.get('/board', response_model=BoardSnapshot)
def get_board(request: Request):
    return request.app.state.quote_board.snapshot()


@router.get('/instruments', response_model=list[Instrument])
def list_instruments(request: Request):
    return list(request.app.state.quote_board.instruments)


@router.post('/board/refresh', status_code=202, response_model=RefreshAccepted)
def refresh_board(request: Request):
    scheduler = request.app.state.board_scheduler
    if not scheduler.trigger():
        raise HTTPException(status_code=409, detail='REFRESH_IN_PROGRESS')
    return RefreshAccepted(accepted=True)


@router.get('/metrics/board')
def board_metrics(request: Request):
    board = request.app.state.quote_board
    snapshot = board.snapshot()
    metrics = request.app.state.quote_resolver.metrics()
    metrics.update(request.app.state.batch_updater.metrics())
    metrics.update(
        {
            'is_refreshing': snapshot.is_refreshing,
            'api_health': snapshot.api_health,
            'stocks_with_data': snapshot.stocks_with_data,
            'publish_count': board.publish_count,
        }
    )
    return metrics
