import io

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill

HEADER_FONT = Font(bold=True, color="FF1F2937")
HEADER_FILL = PatternFill(fill_type="solid", fgColor="FFE5E7EB")
WARNING_FILL = PatternFill(fill_type="solid", fgColor="FFFFF3BF")


def _write_header(sheet, headers):
    sheet.append(headers)
    for cell in sheet[sheet.max_row]:
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)


def _set_widths(sheet, widths):
    for index, width in enumerate(widths, start=1):
        sheet.column_dimensions[chr(64 + index)].width = width


def build_plan_workbook(plan):
    workbook = Workbook()

    summary_sheet = workbook.active
    summary_sheet.title = "Summary"
    _write_header(summary_sheet, ["Field", "Value"])
    summary_rows = [
        ("Truck Type", plan.get("truck_type_label") or ""),
        ("Trucks Needed", int(plan.get("trucks_needed") or 0)),
        ("Recommendation", plan.get("summary") or ""),
        ("Linear Feet", round(float(plan.get("linear_feet") or 0.0), 2)),
        ("Packed Linear Feet", round(float(plan.get("packed_linear_feet") or 0.0), 2)),
        ("Total Weight (lbs)", round(float(plan.get("total_weight_lbs") or 0.0), 2)),
    ]
    for row in summary_rows:
        summary_sheet.append(list(row))
    for warning in plan.get("warnings") or []:
        summary_sheet.append(["Warning", warning.get("message") or ""])
        for cell in summary_sheet[summary_sheet.max_row]:
            cell.fill = WARNING_FILL
    _set_widths(summary_sheet, [22, 60])

    items_sheet = workbook.create_sheet("Items")
    _write_header(items_sheet, ["SKU", "Quantity"])
    for item in plan.get("items") or []:
        items_sheet.append([item.get("sku") or "", int(item.get("quantity") or 0)])
    _set_widths(items_sheet, [24, 12])

    pallets_sheet = workbook.create_sheet("Pallet Groups")
    _write_header(
        pallets_sheet,
        ["Category", "Pallet Length (ft)", "Pallets", "Floor Slots", "Linear Feet"],
    )
    for group in plan.get("groups") or []:
        pallets_sheet.append(
            [
                group.get("category") or "",
                round(float(group.get("pallet_length_ft") or 0.0), 2),
                int(group.get("pallet_count") or 0),
                int(group.get("floor_slots") or 0),
                round(float(group.get("linear_feet") or 0.0), 2),
            ]
        )
    _set_widths(pallets_sheet, [16, 18, 12, 12, 14])

    occupancy_sheet = workbook.create_sheet("Occupancy")
    _write_header(
        occupancy_sheet,
        ["Truck Class", "Trucks", "Capacity (ft)", "Per Truck (ft)", "Occupancy %", "Grade"],
    )
    for entry in plan.get("occupancy") or []:
        occupancy_sheet.append(
            [
                entry.get("label") or "",
                int(entry.get("count") or 0),
                round(float(entry.get("capacity_ft") or 0.0), 2),
                round(float(entry.get("per_truck_feet") or 0.0), 2),
                round(float(entry.get("utilization_pct") or 0.0), 1),
                entry.get("utilization_grade") or "",
            ]
        )
    _set_widths(occupancy_sheet, [16, 10, 14, 14, 14, 8])

    issues_sheet = workbook.create_sheet("Issues")
    _write_header(issues_sheet, ["SKU", "Issue"])
    for error in plan.get("errors") or []:
        issues_sheet.append([error.get("sku") or "", error.get("message") or ""])
    for entry in plan.get("unestimated_items") or []:
        issues_sheet.append([entry.get("sku") or "", entry.get("reason") or ""])
    for entry in plan.get("excluded_items") or []:
        issues_sheet.append([entry.get("sku") or "", "Excluded from truck footage."])
    _set_widths(issues_sheet, [24, 70])

    notes_sheet = workbook.create_sheet("Packing Notes")
    for line in (plan.get("packing_notes") or "").splitlines():
        notes_sheet.append([line])
    if plan.get("narrative"):
        notes_sheet.append([""])
        notes_sheet.append(["Generator Commentary"])
        notes_sheet[notes_sheet.max_row][0].font = HEADER_FONT
        for line in plan["narrative"].splitlines():
            notes_sheet.append([line])
    _set_widths(notes_sheet, [110])

    return workbook


def plan_workbook_bytes(plan):
    output = io.BytesIO()
    build_plan_workbook(plan).save(output)
    output.seek(0)
    return output.getvalue()
