"""
Integration Tests Package for parkflow

Integration tests drive a fully wired ParkingFacility through its public
operations:
1. Entry, payment and exit round trips
2. Concurrent issuance and payment
3. Administrative cancel/refund
4. Configuration loading into a working facility
"""
