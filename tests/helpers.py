from datetime import date, timedelta


def next_weekday(iso_weekday: int, weeks_ahead: int = 0) -> date:
    """The next date (strictly after today) falling on an ISO weekday"""
    today = date.today()
    days = (iso_weekday - today.isoweekday()) % 7 or 7
    return today + timedelta(days=days, weeks=weeks_ahead)
