# Routers module for the Event Ticketing API
from app.routers import events
from app.routers import tickets
from app.routers import payments
from app.routers import promotions
