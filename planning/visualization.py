"""
Модуль для визуализации сетевого графика PERT и диаграммы Ганта
"""

import math
from collections import deque

from PIL import Image, ImageDraw, ImageFont

CRITICAL_COLOR = (255, 170, 170)  # Светло-красный
NORMAL_COLOR = (170, 170, 255)  # Светло-синий
TERMINAL_COLOR = (220, 220, 220)

NODE_WIDTH = 150
NODE_HEIGHT = 80
COLUMN_GAP = 60
ROW_GAP = 30
MARGIN = 20

# Telegram не принимает фото со стороной больше 10000 px
MAX_CHART_WIDTH = 4000
MAX_CHART_HEIGHT = 4000
MIN_TICK_SPACING = 30


def load_font(size=12):
    """Загружает шрифт Arial или стандартный шрифт PIL."""
    try:
        return ImageFont.truetype('arial.ttf', size)
    except IOError:
        return ImageFont.load_default()


def layout_schedule_graph(graph):
    """
    Располагает узлы графа по колонкам и строкам.

    Колонка узла - длина самого длинного пути от узла start, строка -
    порядок узла внутри колонки.

    Args:
        graph: ScheduleGraph

    Returns:
        Словарь id узла -> (колонка, строка)
    """
    successors = {node.id: [] for node in graph.nodes}
    in_degree = {node.id: 0 for node in graph.nodes}
    for edge in graph.edges:
        successors[edge.source].append(edge.target)
        in_degree[edge.target] += 1

    column = {node.id: 0 for node in graph.nodes}
    queue = deque(node.id for node in graph.nodes if in_degree[node.id] == 0)
    while queue:
        current = queue.popleft()
        for successor in successors[current]:
            column[successor] = max(column[successor], column[current] + 1)
            in_degree[successor] -= 1
            if in_degree[successor] == 0:
                queue.append(successor)

    # Узел end всегда в последней колонке
    end_nodes = [node.id for node in graph.nodes if node.kind == 'end']
    if end_nodes:
        last_column = max(column.values())
        for node_id in end_nodes:
            column[node_id] = max(last_column, 1)

    positions = {}
    rows_used = {}
    for node in graph.nodes:
        node_column = column[node.id]
        positions[node.id] = (node_column, rows_used.get(node_column, 0))
        rows_used[node_column] = rows_used.get(node_column, 0) + 1

    return positions


def _node_box(position):
    node_column, node_row = position
    left = MARGIN + node_column * (NODE_WIDTH + COLUMN_GAP)
    top = MARGIN + node_row * (NODE_HEIGHT + ROW_GAP)
    return left, top, left + NODE_WIDTH, top + NODE_HEIGHT


def generate_network_diagram(graph):
    """
    Генерирует сетевую диаграмму проекта.

    Args:
        graph: ScheduleGraph с отметками критичности

    Returns:
        Изображение сетевой диаграммы в формате PIL.Image
    """
    positions = layout_schedule_graph(graph)
    columns = max(position[0] for position in positions.values()) + 1
    rows = max(position[1] for position in positions.values()) + 1

    width = 2 * MARGIN + columns * NODE_WIDTH + (columns - 1) * COLUMN_GAP
    height = 2 * MARGIN + rows * NODE_HEIGHT + (rows - 1) * ROW_GAP
    image = Image.new('RGB', (width, height), 'white')
    draw = ImageDraw.Draw(image)
    font = load_font(11)

    # Сначала дуги, чтобы узлы рисовались поверх
    for edge in graph.edges:
        _, source_top, source_right, source_bottom = _node_box(positions[edge.source])
        target_left, target_top, _, target_bottom = _node_box(positions[edge.target])
        start = (source_right, (source_top + source_bottom) // 2)
        end = (target_left, (target_top + target_bottom) // 2)
        color = 'red' if edge.is_critical else 'gray'
        draw.line([start, end], fill=color, width=3 if edge.is_critical else 1)
        draw.polygon([end, (end[0] - 8, end[1] - 4), (end[0] - 8, end[1] + 4)], fill=color)

    for node in graph.nodes:
        box = _node_box(positions[node.id])
        if node.kind != 'activity':
            fill = TERMINAL_COLOR
        else:
            fill = CRITICAL_COLOR if node.is_critical else NORMAL_COLOR
        draw.rectangle(box, fill=fill, outline='red' if node.is_critical else 'black',
                       width=2 if node.is_critical else 1)
        draw.multiline_text((box[0] + 5, box[1] + 5), node.label, fill='black', font=font)

    return image


def draw_hatching(draw, left, top, right, bottom):
    """
    Рисует штриховку (резерв времени работы).

    Args:
        draw: Объект ImageDraw
        left, top, right, bottom: Координаты прямоугольника
    """
    for i in range(int(left), int(right), 5):
        draw.line([(i, top), (min(i + 10, right), bottom)], fill='gray', width=1)


def draw_legend(draw, image_width, legend_top, font):
    """
    Рисует легенду диаграммы Ганта.

    Args:
        draw: Объект ImageDraw
        image_width: Ширина изображения
        legend_top: Верхняя граница легенды
        font: Шрифт для текста
    """
    draw.rectangle([(0, legend_top), (image_width - 1, legend_top + 40)], fill='#f8f8f8', outline='lightgray')
    draw.text((10, legend_top + 12), "Легенда:", fill='black', font=font)

    samples = [
        (CRITICAL_COLOR, "Критическая работа", False),
        (NORMAL_COLOR, "Обычная работа", False),
        ('white', "Резерв времени", True),
    ]
    sample_left = 80
    for fill, text, hatched in samples:
        sample_top = legend_top + 10
        draw.rectangle([sample_left, sample_top, sample_left + 30, sample_top + 20], fill=fill, outline='black')
        if hatched:
            draw_hatching(draw, sample_left, sample_top, sample_left + 30, sample_top + 20)
        draw.text((sample_left + 40, sample_top + 4), text, fill='black', font=font)
        sample_left += 180


def generate_gantt_chart(schedule, day_width=30, row_height=30):
    """
    Генерирует диаграмму Ганта по ранним срокам с резервами до поздних.

    Args:
        schedule: PertSchedule

    Returns:
        PIL Image object с диаграммой
    """
    font = load_font(12)

    if not schedule.nodes:
        image = Image.new('RGB', (400, 200), 'white')
        draw = ImageDraw.Draw(image)
        draw.text((10, 10), "Нет работ для отображения", fill="black", font=font)
        return image

    margin_left = 160
    margin_top = 40
    duration = max(1, math.ceil(schedule.project_duration))

    # Длинные и большие проекты сжимаем до допустимого размера
    day_width = min(day_width, (MAX_CHART_WIDTH - margin_left - MARGIN) / duration)
    row_height = max(4, min(row_height, (MAX_CHART_HEIGHT - margin_top - 60) // len(schedule.nodes)))
    tick_step = max(1, math.ceil(MIN_TICK_SPACING / day_width))

    width = max(margin_left + int(duration * day_width) + MARGIN, 620)
    height = margin_top + len(schedule.nodes) * row_height + 60

    image = Image.new('RGB', (width, height), 'white')
    draw = ImageDraw.Draw(image)

    # Шкала времени
    for day in range(0, duration + 1, tick_step):
        x = int(margin_left + day * day_width)
        draw.line([(x, margin_top - 10), (x, margin_top + len(schedule.nodes) * row_height)], fill='lightgray')
        draw.text((x - 4, margin_top - 28), str(day), fill='black', font=font)
    draw.text((10, margin_top - 28), "Работа", fill='black', font=font)

    # Критические работы сверху, затем по раннему началу
    rows = sorted(schedule.nodes, key=lambda node: (not node.is_critical, node.earliest_start))
    for index, node in enumerate(rows):
        top = margin_top + index * row_height + row_height // 6
        bottom = top + row_height - 2 * (row_height // 6) - 1
        name = node.name or f"#{node.id}"
        if len(name) > 20:
            name = name[:17] + "..."
        if row_height >= 16:
            draw.text((10, top + 3), name, fill='black', font=font)

        left = int(margin_left + node.earliest_start * day_width)
        right = max(left + 2, int(margin_left + node.earliest_finish * day_width))
        draw.rectangle([left, top, right, bottom], fill=CRITICAL_COLOR if node.is_critical else NORMAL_COLOR,
                       outline='black')

        if node.slack > 0:
            slack_right = max(right, int(margin_left + node.latest_finish * day_width))
            draw.rectangle([right, top, slack_right, bottom], fill='white', outline='gray')
            draw_hatching(draw, right, top, slack_right, bottom)

    draw_legend(draw, width, height - 45, font)
    return image
