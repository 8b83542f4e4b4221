from fuel_planner.formatters import format_event, format_minutes, format_route_summary
from fuel_planner.models import ClimbSegment, FuelEvent, FuelKind, Priority, Route


class TestFormatMinutes:
    def test_under_an_hour(self):
        assert format_minutes(45) == "45m"

    def test_hours(self):
        assert format_minutes(65) == "1h 05m"
        assert format_minutes(120) == "2h 00m"


class TestFormatEvent:
    def test_carbs(self):
        line = format_event(FuelEvent(60, FuelKind.CARBS, "26g carbs (gel)"))
        assert "1h 00m" in line
        assert "CARBS" in line
        assert line.endswith("26g carbs (gel)")

    def test_critical_flagged(self):
        line = format_event(
            FuelEvent(45, FuelKind.CARBS, "Extra carbs before climb (+150m elevation)", Priority.CRITICAL)
        )
        assert line.endswith("[!]")

    def test_electrolytes(self):
        line = format_event(FuelEvent(60, FuelKind.ELECTROLYTES, "500mg sodium (electrolyte tab/chew)"))
        assert "ELECTROLYTES" in line


class TestFormatRouteSummary:
    def test_lines(self):
        route = Route("Hill Loop", 32.2, 450.0, 86, (ClimbSegment(10.0, 14.0, 300.0, 7.5),))
        lines = format_route_summary(route)
        assert lines[0].endswith("Hill Loop")
        assert "32.20 km" in lines[1]
        assert "450 m" in lines[2]
        assert lines[3].endswith("1h 26m")
        assert lines[4].endswith("1")
        assert lines[5] == "  Climb 1: km 10.0-14.0, +300 m @ 7.5%"
