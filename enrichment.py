"""Owner enrichment: join a reduced view of the owning user onto each record."""

from typing import List, Optional

from schemas import OwnerSummary

USER_COLLECTION = "user"
OWNER_FIELDS = ("username", "fullname", "avatar_url")
JOINED_FIELD = "owner_details"


def owner_lookup_stages(local_field: str = "owner", as_field: str = JOINED_FIELD) -> List[dict]:
    # A missing owner leaves an empty array, unwrapped to null so the record stays.
    return [
        {
            "$lookup": {
                "from": USER_COLLECTION,
                "localField": local_field,
                "foreignField": "_id",
                "pipeline": [{"$project": {field: 1 for field in OWNER_FIELDS}}],
                "as": as_field,
            }
        },
        {
            "$addFields": {
                as_field: {"$ifNull": [{"$arrayElemAt": [f"${as_field}", 0]}, None]}
            }
        },
    ]


def owner_summary(doc: dict, as_field: str = JOINED_FIELD) -> Optional[OwnerSummary]:
    return OwnerSummary.from_doc(doc.get(as_field))
