"""Summary statistics over angle series"""
