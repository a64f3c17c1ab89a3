# ============================================================================
# src/mediguide/constants/drug_knowledge.py
# ============================================================================
"""
Local Drug Knowledge Base
- Plain-language indications, mechanism, side effects, precautions
- Consulted before any external drug label API
"""

LOCAL_DRUGS = [
    {
        "name": "Amlodipine",
        "generic_name": "amlodipine besylate",
        "brand_names": ["Norvasc", "Amlong", "Stamlo"],
        "indications": ["High blood pressure", "Chest pain (angina)"],
        "mechanism_of_action": "Relaxes blood vessels so blood can flow more easily.",
        "common_side_effects": ["Ankle swelling", "Headache", "Flushing", "Tiredness"],
        "precautions": ["Stand up slowly to avoid dizziness", "Tell your doctor about liver problems"],
        "dosage_forms": ["Tablet"],
        "typical_dosage_range": "2.5mg to 10mg once daily",
        "max_daily_dose": "10mg",
    },
    {
        "name": "Metformin",
        "generic_name": "metformin hydrochloride",
        "brand_names": ["Glucophage", "Glycomet"],
        "indications": ["Type 2 diabetes"],
        "mechanism_of_action": "Lowers the amount of sugar the liver releases and helps the body use insulin.",
        "common_side_effects": ["Nausea", "Diarrhoea", "Stomach upset", "Metallic taste"],
        "precautions": ["Take with meals", "Avoid heavy alcohol use", "Tell your doctor about kidney problems"],
        "dosage_forms": ["Tablet", "Extended-release tablet"],
        "typical_dosage_range": "500mg to 2000mg per day",
        "max_daily_dose": "2550mg",
    },
    {
        "name": "Atorvastatin",
        "generic_name": "atorvastatin calcium",
        "brand_names": ["Lipitor", "Atorva"],
        "indications": ["High cholesterol", "Prevention of heart attack and stroke"],
        "mechanism_of_action": "Blocks an enzyme the liver uses to make cholesterol.",
        "common_side_effects": ["Muscle aches", "Joint pain", "Diarrhoea"],
        "precautions": ["Report unexplained muscle pain", "Limit grapefruit juice"],
        "dosage_forms": ["Tablet"],
        "typical_dosage_range": "10mg to 80mg once daily",
        "max_daily_dose": "80mg",
    },
    {
        "name": "Paracetamol",
        "generic_name": "acetaminophen",
        "brand_names": ["Crocin", "Calpol", "Dolo", "Tylenol"],
        "indications": ["Pain", "Fever"],
        "mechanism_of_action": "Reduces pain signals and lowers fever in the brain.",
        "common_side_effects": ["Rarely nausea", "Rarely rash"],
        "precautions": ["Do not exceed the maximum daily dose", "Avoid combining with other paracetamol products"],
        "dosage_forms": ["Tablet", "Syrup"],
        "typical_dosage_range": "500mg to 1000mg every 4 to 6 hours",
        "max_daily_dose": "4000mg",
    },
    {
        "name": "Amoxicillin",
        "generic_name": "amoxicillin trihydrate",
        "brand_names": ["Mox", "Novamox", "Amoxil"],
        "indications": ["Bacterial infections"],
        "mechanism_of_action": "Stops bacteria from building their cell walls.",
        "common_side_effects": ["Diarrhoea", "Nausea", "Rash"],
        "precautions": ["Complete the full course", "Tell your doctor about penicillin allergy"],
        "dosage_forms": ["Capsule", "Suspension"],
        "typical_dosage_range": "250mg to 500mg three times daily",
        "max_daily_dose": "3000mg",
    },
    {
        "name": "Azithromycin",
        "generic_name": "azithromycin dihydrate",
        "brand_names": ["Azithral", "Zithromax"],
        "indications": ["Bacterial infections of the chest, throat, ear and skin"],
        "mechanism_of_action": "Stops bacteria from making the proteins they need to grow.",
        "common_side_effects": ["Diarrhoea", "Nausea", "Stomach pain"],
        "precautions": ["Complete the full course", "Tell your doctor about heart rhythm problems"],
        "dosage_forms": ["Tablet", "Suspension"],
        "typical_dosage_range": "500mg once daily for 3 days",
        "max_daily_dose": "500mg",
    },
    {
        "name": "Losartan",
        "generic_name": "losartan potassium",
        "brand_names": ["Cozaar", "Losar"],
        "indications": ["High blood pressure", "Kidney protection in diabetes"],
        "mechanism_of_action": "Blocks a hormone that narrows blood vessels.",
        "common_side_effects": ["Dizziness", "Tiredness", "Raised potassium"],
        "precautions": ["Avoid potassium supplements unless prescribed", "Not for use in pregnancy"],
        "dosage_forms": ["Tablet"],
        "typical_dosage_range": "25mg to 100mg once daily",
        "max_daily_dose": "100mg",
    },
    {
        "name": "Metoprolol",
        "generic_name": "metoprolol succinate",
        "brand_names": ["Lopressor", "Metolar", "Toprol"],
        "indications": ["High blood pressure", "Chest pain", "Heart failure"],
        "mechanism_of_action": "Slows the heart rate and reduces the heart's workload.",
        "common_side_effects": ["Tiredness", "Dizziness", "Cold hands and feet"],
        "precautions": ["Do not stop suddenly", "Tell your doctor about asthma"],
        "dosage_forms": ["Tablet", "Extended-release tablet"],
        "typical_dosage_range": "25mg to 200mg per day",
        "max_daily_dose": "400mg",
    },
    {
        "name": "Glimepiride",
        "generic_name": "glimepiride",
        "brand_names": ["Amaryl", "Glimy"],
        "indications": ["Type 2 diabetes"],
        "mechanism_of_action": "Helps the pancreas release more insulin.",
        "common_side_effects": ["Low blood sugar", "Dizziness", "Nausea"],
        "precautions": ["Take with breakfast", "Carry a sugar source for low blood sugar"],
        "dosage_forms": ["Tablet"],
        "typical_dosage_range": "1mg to 4mg once daily",
        "max_daily_dose": "8mg",
    },
    {
        "name": "Pantoprazole",
        "generic_name": "pantoprazole sodium",
        "brand_names": ["Pan", "Protonix", "Pantocid"],
        "indications": ["Acid reflux", "Stomach ulcers"],
        "mechanism_of_action": "Reduces the amount of acid the stomach makes.",
        "common_side_effects": ["Headache", "Diarrhoea", "Stomach pain"],
        "precautions": ["Take before breakfast", "Long-term use may lower magnesium"],
        "dosage_forms": ["Tablet", "Injection"],
        "typical_dosage_range": "20mg to 40mg once daily",
        "max_daily_dose": "80mg",
    },
    {
        "name": "Aspirin",
        "generic_name": "acetylsalicylic acid",
        "brand_names": ["Ecosprin", "Disprin"],
        "indications": ["Prevention of heart attack and stroke", "Pain", "Fever"],
        "mechanism_of_action": "Makes blood platelets less sticky and reduces inflammation.",
        "common_side_effects": ["Stomach upset", "Heartburn", "Easy bruising"],
        "precautions": ["Take after food", "Tell your doctor about stomach ulcers or bleeding problems"],
        "dosage_forms": ["Tablet"],
        "typical_dosage_range": "75mg to 150mg once daily for heart protection",
        "max_daily_dose": "4000mg",
    },
    {
        "name": "Warfarin",
        "generic_name": "warfarin sodium",
        "brand_names": ["Coumadin", "Warf"],
        "indications": ["Prevention of blood clots"],
        "mechanism_of_action": "Slows the blood's clotting process.",
        "common_side_effects": ["Bleeding gums", "Easy bruising"],
        "precautions": ["Keep regular INR blood tests", "Keep vitamin K intake steady"],
        "dosage_forms": ["Tablet"],
        "typical_dosage_range": "Adjusted to INR, commonly 2mg to 10mg daily",
        "max_daily_dose": "Set by your doctor",
    },
    {
        "name": "Cetirizine",
        "generic_name": "cetirizine hydrochloride",
        "brand_names": ["Zyrtec", "Cetzine", "Okacet"],
        "indications": ["Allergies", "Hay fever", "Hives"],
        "mechanism_of_action": "Blocks histamine, a chemical released during allergic reactions.",
        "common_side_effects": ["Drowsiness", "Dry mouth", "Headache"],
        "precautions": ["May cause drowsiness", "Avoid alcohol"],
        "dosage_forms": ["Tablet", "Syrup"],
        "typical_dosage_range": "5mg to 10mg once daily",
        "max_daily_dose": "10mg",
    },
]
