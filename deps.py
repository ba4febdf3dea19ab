"""
FastAPI dependencies. Use Depends(get_state) / Depends(get_session) in route handlers.
"""
from typing import Optional

from fastapi import Depends, Request

from app_state import AppState
from modules.tryon.session import TryOnSession


def get_state(request: Request) -> AppState:
	"""Return the app state instance attached in lifespan."""
	return request.app.state.state


def get_session(state: AppState = Depends(get_state)) -> Optional[TryOnSession]:
	"""Active try-on session, or None before the first /video/connect."""
	return state.session
