"""LTIPN - back-office reservations et voyages LTC / LTC bookings and voyages back-office."""
