from merging.merger import Delegation, FieldExtension


def chirps_of_user(required, args):
    return {"authorId": required["id"]}


def author_of_chirp(required, args):
    return {"id": required["authorId"]}


def location_of_event(required, args):
    return {"place": required["cityName"]}


def link_extensions(registry):
    """Fields that navigate between the demo schemas.

    The Event -> Location link needs the remote "universe" and "weather"
    schemas and is only added when both are configured.
    """
    extensions = [
        FieldExtension(
            "User",
            "chirps",
            "[Chirp]",
            Delegation("chirps", "chirpsByAuthorId", chirps_of_user),
            required=("id",),
        ),
        FieldExtension(
            "Chirp",
            "author",
            "User",
            Delegation("authors", "userById", author_of_chirp),
            required=("authorId",),
        ),
    ]
    if "universe" in registry and "weather" in registry:
        extensions.append(
            FieldExtension(
                "Event",
                "location",
                "Location",
                Delegation("weather", "location", location_of_event),
                required=("cityName",),
            )
        )
    return extensions
