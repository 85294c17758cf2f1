from fastapi import APIRouter

from rfblind.config import cnf

router = APIRouter(tags=["util"])


@router.get("/ping")
def ping():
    """Ping the server to check if it's alive"""
    return {"response": "pong"}


@router.get("/defaults")
def defaults():
    """Default forest parameters and the expected treatment row label"""
    return {
        "treatment_row_name": cnf.treatment_row_name,
        "n_tree": cnf.default_n_tree,
        "n_forest": cnf.default_n_forest,
    }
