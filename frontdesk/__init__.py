"""Clinic front desk: walk-in queue and appointment scheduling API"""
