from __future__ import annotations

# (level, min points, title)
LEVELS = [
    (1, 0, "Novice"),
    (2, 50, "Rookie"),
    (3, 100, "Pro"),
    (4, 200, "Expert"),
    (5, 600, "Master"),
    (6, 1200, "Champion"),
    (7, 2400, "Legend"),
    (8, 4800, "Elite"),
    (9, 9600, "Mythic"),
    (10, 19200, "Godlike"),
]

def level_for(points: int) -> int:
    points = max(0, int(points or 0))
    for level, floor, _title in reversed(LEVELS):
        if points >= floor:
            return level
    return 1

def level_info(points: int) -> dict:
    points = max(0, int(points or 0))
    level = level_for(points)
    _, floor, title = LEVELS[level - 1]
    if level < len(LEVELS):
        next_floor = LEVELS[level][1]
        to_next = next_floor - points
        progress = min(1.0, (points - floor) / (next_floor - floor))
    else:
        to_next = 0
        progress = 1.0
    return {
        "level": level,
        "title": title,
        "points_required": floor,
        "points_to_next_level": to_next,
        "progress": round(progress, 4),
    }
