"""Joint angle, event, cycle and classification engines"""
