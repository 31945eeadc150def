# pin_assignments.py

# -------------------------------
# Default actuator driver pins (BCM line names)
# -------------------------------
# ENA  -> driver enable, held HIGH while the service runs
# IN1  -> extend when HIGH (IN2 LOW)
# IN2  -> retract when HIGH (IN1 LOW)

ACTUATOR_ENA_PIN = "GPIO25"
ACTUATOR_IN1_PIN = "GPIO8"
ACTUATOR_IN2_PIN = "GPIO7"

GPIO_CONSUMER = "baendaeli-dispenser"
