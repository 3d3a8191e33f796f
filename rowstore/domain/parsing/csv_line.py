from __future__ import annotations

QUOTE = '"'
DELIMITER = ","


def stripTerminator(text: str) -> str:
    """
    Назначение:
        Убирает один завершающий перевод строки (\\n или \\r\\n), если он есть.
    """
    if text.endswith("\r\n"):
        return text[:-2]
    if text.endswith("\n"):
        return text[:-1]
    return text


def parseCsvLine(line: str) -> list[str]:
    """
    Назначение:
        Разбивает одну строку CSV на поля по правилам, близким к RFC 4180.

    Правила:
        - Запятая вне кавычек разделяет поля.
        - Кавычка переключает режим "внутри кавычек"; внутри кавычек
          "" означает одну литеральную кавычку, запятая литеральна.
        - Каждое поле тримится.
        - Последнее поле выдаётся всегда, даже без завершающей запятой.

    Выходные данные:
        list[str]
            Для пустой строки: [""].
    """
    cells: list[str] = []
    current: list[str] = []
    inside_quotes = False
    i = 0
    n = len(line)

    while i < n:
        char = line[i]
        if char == QUOTE:
            if inside_quotes and i + 1 < n and line[i + 1] == QUOTE:
                current.append(QUOTE)
                i += 2
                continue
            inside_quotes = not inside_quotes
        elif char == DELIMITER and not inside_quotes:
            cells.append("".join(current).strip())
            current = []
        else:
            current.append(char)
        i += 1

    cells.append("".join(current).strip())
    return cells


__all__ = ["parseCsvLine", "stripTerminator"]
