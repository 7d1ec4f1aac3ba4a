# AJaaS Services
