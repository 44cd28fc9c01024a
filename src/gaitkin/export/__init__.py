"""JSON, Excel and plot exporters"""
