from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from config.settings import THEMES, Preferences
from routers.dependencies import get_preferences

router = APIRouter(prefix="/preferences")


class ThemeUpdate(BaseModel):
    theme: str = Field(..., min_length=1)


@router.get("/theme")
def theme_get(prefs: Preferences = Depends(get_preferences)):
    return {
        "success": True,
        "theme": prefs.get_theme(),
        "available": [{"code": code, "name": name} for code, name in THEMES.items()],
    }


@router.put("/theme")
def theme_set(payload: ThemeUpdate, prefs: Preferences = Depends(get_preferences)):
    try:
        prefs.set_theme(payload.theme)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"success": True, "theme": payload.theme}
