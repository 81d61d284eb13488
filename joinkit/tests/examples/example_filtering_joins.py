from joinkit import Source, semi_join, anti_join

from joinkit.tests import DATA_DIR

flights = Source(DATA_DIR / "flights.csv").table()
planes = Source(DATA_DIR / "planes.csv").table()

# flights whose plane we know about, and the ones we don't
print(semi_join(flights, planes, "tailnum"))
print(anti_join(flights, planes, "tailnum"))
