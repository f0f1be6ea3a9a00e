"""
Data Sources - Normalizers Package.

Pure functions converting raw provider payloads into DomainRecords.
No I/O, no clock reads: the reference time is always passed in.

Normalizers:
- weather: NOAA gridpoints / Open-Meteo forecast -> WeatherSnapshot
- surf: Surfline / Open-Meteo marine -> SurfSpotReading
- tides: NOAA CO-OPS hi/lo predictions -> TideEvent
- news: RSS entries -> NewsArticle
- events: Eventbrite / schema.org JSON-LD -> EventListing
"""
