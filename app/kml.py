import random

import simplekml

# AABBGGRR
KML_COLORS = [
    "ff0000ff",  # red
    "ffadd8e6",  # light blue
    "ffc1b6ff",  # light pink
    "ff90ee90",  # light green
    "ff00ffff",  # yellow
    "ff00a5ff",  # orange
    "ffff00ff",  # magenta
]

ICON_HREF = "http://maps.google.com/mapfiles/kml/paddle/pink-stars.png"


def _route_style(color: str) -> simplekml.Style:
    style = simplekml.Style()
    style.linestyle.color = color
    style.linestyle.width = 4
    style.labelstyle.color = color
    style.labelstyle.scale = 1
    style.iconstyle.color = color
    style.iconstyle.scale = 1
    style.iconstyle.icon.href = ICON_HREF
    return style


def generate_kml(positions, name: str, max_points: int = 500, color: str = None) -> str:
    """
    KML document with the route split into LineString placemarks of at most
    max_points coordinates each (some viewers choke on very long lines).
    """
    kml = simplekml.Kml(name=name, open=1)
    style = _route_style(color or random.choice(KML_COLORS))
    folder = kml.newfolder(name="LineStrings")

    for chunk_index, start in enumerate(range(0, len(positions), max_points)):
        chunk = positions[start:start + max_points]
        line = folder.newlinestring(
            name=f"Route_{chunk_index}",
            coords=[(p.longitude, p.latitude, p.altitude) for p in chunk],
        )
        line.altitudemode = simplekml.AltitudeMode.clamptoground
        line.tessellate = 1
        line.style = style

    return kml.kml()
