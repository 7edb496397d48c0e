from fastapi import APIRouter

from zigzig.models.portfolio import ParsedPortfolioData, ParsePortfolioRequest
from zigzig.services.portfolio_parser import PortfolioParser
from zigzig.utils.logging_config import log_api_call

router = APIRouter()


@router.post("/parse", response_model=ParsedPortfolioData)
@log_api_call("parse_portfolio")
async def parse_portfolio(body: ParsePortfolioRequest):
    """Preview how a portfolio is understood by the matcher"""
    return PortfolioParser.parse_portfolio(body.content)
