import os
from datetime import timedelta

from app import (
    Attraction,
    FlightArrival,
    OccupancyRate,
    OriginCountry,
    Profile,
    TouristSpending,
    VisitorStat,
    app,
    db,
    ensure_schema,
    local_today,
)

# 2023 monthly figures used by the dashboard charts in development.
VISITORS_2023 = [
    (58200, 5200), (64500, 6800), (75800, 8800), (68900, 4300),
    (61200, 3900), (57400, 2400), (62100, 5300), (72300, 6200),
    (64500, 4200), (76800, 5600), (83600, 6700), (89100, 6100),
]
OCCUPANCY_2023 = [68, 74, 82, 79, 72, 69, 73, 81, 76, 84, 88, 90]
SPENDING_2023 = [920, 945, 1010, 980, 930, 905, 950, 1005, 960, 1030, 1080, 1120]


def seed():
    with app.app_context():
        ensure_schema()

        if not Profile.query.filter_by(email="admin@langkawi.test").first():
            admin = Profile(email="admin@langkawi.test", full_name="Dashboard Admin", role="admin")
            admin.set_password(os.getenv("SEED_ADMIN_PASSWORD", "adminpass123"))
            db.session.add(admin)

        if not VisitorStat.query.first():
            db.session.add_all(
                VisitorStat(month=idx, year=2023, domestic_visitors=dom, international_visitors=intl)
                for idx, (dom, intl) in enumerate(VISITORS_2023, start=1)
            )

        if not OccupancyRate.query.first():
            db.session.add_all(
                OccupancyRate(month=idx, year=2023, rate=rate)
                for idx, rate in enumerate(OCCUPANCY_2023, start=1)
            )

        if not TouristSpending.query.first():
            db.session.add_all(
                TouristSpending(month=idx, year=2023, amount=amount, category="Overall")
                for idx, amount in enumerate(SPENDING_2023, start=1)
            )

        if not OriginCountry.query.first():
            db.session.add_all(
                [
                    OriginCountry(country_name="Malaysia", visitor_count=812000, percentage=72.5, year=2023, color="#2563eb"),
                    OriginCountry(country_name="Singapore", visitor_count=96000, percentage=8.6, year=2023, color="#16a34a"),
                    OriginCountry(country_name="China", visitor_count=71000, percentage=6.3, year=2023, color="#dc2626"),
                    OriginCountry(country_name="United Kingdom", visitor_count=42000, percentage=3.8, year=2023, color="#9333ea"),
                ]
            )

        if not Attraction.query.first():
            db.session.add_all(
                [
                    Attraction(
                        name="Langkawi SkyCab",
                        description="Cable car up Gunung Mat Cincang",
                        location_lat=6.3712,
                        location_lng=99.6713,
                        visitors_count=620000,
                        rating=4.5,
                    ),
                    Attraction(
                        name="Pantai Cenang",
                        description="Main beach strip",
                        location_lat=6.2917,
                        location_lng=99.7283,
                        visitors_count=540000,
                        rating=4.3,
                    ),
                    Attraction(
                        name="Kilim Karst Geoforest Park",
                        description="Mangrove tours",
                        location_lat=6.4081,
                        location_lng=99.8583,
                        visitors_count=210000,
                        rating=4.6,
                    ),
                ]
            )

        if not FlightArrival.query.first():
            today = local_today()
            yesterday = today - timedelta(days=1)
            db.session.add_all(
                [
                    FlightArrival(flight_number="MH1432", airline="Malaysia Airlines", airline_code="MH", origin="Kuala Lumpur",
                                  arrival_time="09:30", passengers=132, status="Arrived", date=yesterday),
                    FlightArrival(flight_number="AK5642", airline="AirAsia", airline_code="AK", origin="Singapore",
                                  arrival_time="11:45", passengers=175, status="Scheduled", date=today),
                    FlightArrival(flight_number="FD3311", airline="Thai AirAsia", airline_code="FD", origin="Bangkok",
                                  arrival_time="14:20", passengers=163, status="Delayed", date=today),
                ]
            )

        db.session.commit()


if __name__ == "__main__":
    seed()
