"""Schema for the ingestion endpoint: details about one coffee the user owns."""

from datetime import date

from pydantic import BaseModel, ConfigDict, Field


class CoffeeDetails(BaseModel):
    """Origin, name, tasting notes, roast date and roaster of a coffee."""

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "examples": [{
                "origin": "Ethiopia",
                "name": "Yirgacheffe",
                "tasteNotes": ["floral", "citrus"],
                "roastDate": "2024-01-01",
                "roaster": "Acme",
            }]
        },
    )

    origin: str = Field(..., description="Geographical origin of the beans.")
    name: str = Field(..., description="Name of the coffee.")
    taste_notes: list[str] = Field(default_factory=list, alias="tasteNotes")
    roast_date: date = Field(..., alias="roastDate")
    roaster: str = Field(..., description="Who roasted the coffee.")
