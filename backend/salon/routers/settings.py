# backend/salon/routers/settings.py
# Admin-only surface (authorization is enforced upstream)

from fastapi import APIRouter, Depends, HTTPException, status

from ..schemas.settings import (
    SettingRead,
    SettingsResponse,
    SettingsUpdate,
    SettingsUpdateResponse,
)
from ..services.capacity import (
    CapacityEngine,
    ConfigurationMissing,
    UnknownSettingKey,
    get_capacity_engine,
)

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("/", response_model=SettingsResponse)
def get_settings(engine: CapacityEngine = Depends(get_capacity_engine)):
    store = engine.settings_store
    return SettingsResponse(
        settings=[SettingRead.model_validate(row) for row in store.list_entries()],
        current_values=store.get_all(),
    )


@router.put("/", response_model=SettingsUpdateResponse)
def update_settings(
    data: SettingsUpdate,
    engine: CapacityEngine = Depends(get_capacity_engine),
):
    values = {item.key: item.value for item in data.settings}
    try:
        current = engine.settings_store.update_many(values)
    except UnknownSettingKey as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Unknown setting keys: {', '.join(sorted(e.keys))}",
        )
    except ConfigurationMissing as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=e.message,
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Invalid setting value: {e}",
        )

    return SettingsUpdateResponse(
        message="Settings updated successfully",
        settings=current,
    )
