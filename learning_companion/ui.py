"""Single-page client served at ``/``.

Speech synthesis and recognition are browser APIs, so that part of the
reader lives in the page script; everything stateful goes through the REST
endpoints. The page is rendered with the persisted document effects so the
first paint already has the user's font size and contrast.
"""

from typing import Any, Dict


def render_page(effects: Dict[str, Any]) -> str:
    return (_HTML
            .replace("__FONT_SIZE__", effects["font_size"])
            .replace("__ROOT_CLASS__", effects["root_class"])
            .replace("__BODY_CLASS__", effects["body_class"]))


_HTML = """<!DOCTYPE html>
<html lang="en" class="__ROOT_CLASS__" style="--font-size:__FONT_SIZE__">
<head>
<meta charset="UTF-8"/>
<meta name="viewport" content="width=device-width,initial-scale=1"/>
<title>Inclusive Learning Companion</title>
<style>
*,*::before,*::after{box-sizing:border-box;margin:0;padding:0}
:root{--bg:#F0F4FF;--card:#FFFFFF;--text:#0F172A;--muted:#64748B;--border:#E2E8F4;
  --blue:#3B82F6;--blue2:#1D4ED8;--green:#10B981;--red:#EF4444;--r:14px}
html.dark{--bg:#0F172A;--card:#1E293B;--text:#F1F5F9;--muted:#94A3B8;--border:#334155}
html.high-contrast{--bg:#000;--card:#000;--text:#FFF;--muted:#FFEB3B;--border:#FFF;--blue:#FFEB3B;--blue2:#FFF}
html,body{min-height:100%;background:var(--bg);color:var(--text);font-family:Inter,system-ui,sans-serif;font-size:var(--font-size)}
body.dyslexia-font{font-family:OpenDyslexic,'Comic Sans MS',sans-serif;letter-spacing:.05em;word-spacing:.15em;line-height:1.8}
nav{display:flex;gap:8px;flex-wrap:wrap;padding:14px 32px;background:var(--card);border-bottom:1.5px solid var(--border);position:sticky;top:0}
nav .logo{font-weight:800;margin-right:auto;color:var(--blue)}
button,select,input[type=file]{font:inherit;padding:8px 16px;border-radius:8px;border:1.5px solid var(--border);background:var(--card);color:var(--text);cursor:pointer}
button.primary{background:var(--blue);color:#fff;border-color:var(--blue)}
button:focus-visible,select:focus-visible{outline:3px solid var(--blue2);outline-offset:2px}
main{max-width:960px;margin:24px auto;padding:0 16px}
section{display:none}section.active{display:block}
.card{background:var(--card);border:1.5px solid var(--border);border-radius:var(--r);padding:20px;margin-bottom:16px}
.grid{display:grid;grid-template-columns:repeat(auto-fit,minmax(220px,1fr));gap:12px}
.row{display:flex;gap:8px;flex-wrap:wrap;align-items:center;margin:10px 0}
.muted{color:var(--muted)}
.reader-text span.hl{background:#FDE68A;color:#000;border-radius:4px}
.caption-live{font-style:italic;color:var(--muted)}
textarea{width:100%;min-height:160px;font:inherit;padding:12px;border-radius:8px;border:1.5px solid var(--border);background:var(--card);color:var(--text)}
.preview{max-width:100%;max-height:320px;border-radius:8px;margin:10px 0}
video.gesture{width:220px;border-radius:8px;transform:scaleX(-1)}
pre.desc{white-space:pre-wrap}
</style>
</head>
<body class="__BODY_CLASS__">
<nav aria-label="Main">
  <span class="logo">Inclusive Learning Companion</span>
  <button data-go="dashboard">Dashboard</button>
  <button data-go="reader">Reader</button>
  <button data-go="notes">Notes</button>
  <button data-go="captions">Captions</button>
  <button data-go="image">Images</button>
  <button data-go="settings">Settings</button>
</nav>
<main>

<section id="landing">
  <div class="card">
    <h1>Welcome</h1>
    <p class="muted">Pick the profile that fits you best. You can change everything later in Settings.</p>
    <div class="grid" id="personas"></div>
  </div>
  <div class="card">
    <h2>Demo Mode</h2>
    <p class="muted">Canned image descriptions, no network or models needed.</p>
    <div class="row">
      <button class="primary" onclick="finishOnboarding(true)">Enable Demo Mode</button>
      <button onclick="finishOnboarding(false)">Continue without Demo Mode</button>
    </div>
  </div>
</section>

<section id="dashboard">
  <div class="grid">
    <div class="card"><h3>Reader</h3><p class="muted">Listen with word highlighting.</p><button data-go="reader">Open</button></div>
    <div class="card"><h3>Speech Notes</h3><p class="muted">Dictate and save notes.</p><button data-go="notes">Open</button></div>
    <div class="card"><h3>Live Captions</h3><p class="muted">Caption speech as it happens.</p><button data-go="captions">Open</button></div>
    <div class="card"><h3>Image Description</h3><p class="muted">Hear what is in a picture.</p><button data-go="image">Open</button></div>
  </div>
</section>

<section id="reader">
  <div class="card">
    <div class="row">
      <button class="primary" id="play-btn" onclick="togglePlay()">Play</button>
      <button onclick="stopSpeech()">Stop</button>
      <button onclick="voiceCommand()" id="voice-btn">Voice command</button>
      <button onclick="simplify()">Simplify</button>
      <button onclick="toggleGestures()" id="gesture-btn">Gesture control</button>
      <span class="muted">Rate <b id="rate-label">1.00</b>x</span>
    </div>
    <p class="reader-text" id="reader-text" aria-live="polite"></p>
    <video class="gesture" id="gesture-video" autoplay playsinline muted hidden></video>
    <p class="muted" id="gesture-label"></p>
  </div>
</section>

<section id="notes">
  <div class="card">
    <div class="row">
      <button class="primary" id="notes-rec" onclick="toggleNotes()">Start dictation</button>
      <button onclick="saveNote()">Save</button>
      <button onclick="loadNotes()">Load saved</button>
      <button onclick="exportNotes()">Export</button>
    </div>
    <textarea id="notes-text" aria-label="Note text"></textarea>
    <p class="caption-live" id="notes-interim"></p>
    <ul id="notes-list"></ul>
  </div>
</section>

<section id="captions">
  <div class="card">
    <div class="row">
      <button class="primary" id="cap-rec" onclick="toggleCaptions()">Start captions</button>
      <button onclick="exportCaptions()">Export</button>
    </div>
    <ol id="cap-list" aria-live="polite"></ol>
    <p class="caption-live" id="cap-live"></p>
  </div>
</section>

<section id="image">
  <div class="card">
    <div class="row">
      <input type="file" accept="image/*" id="img-file" aria-label="Choose image"/>
      <button id="cam-btn" onclick="toggleCamera()">Use camera</button>
      <label><input type="checkbox" id="use-gemini" checked/> Use Gemini</label>
      <button class="primary" onclick="analyzeImage()">Describe</button>
      <button onclick="speakText(document.getElementById('img-desc').textContent)">Read aloud</button>
    </div>
    <video class="preview" id="cam-video" autoplay playsinline muted hidden></video>
    <img class="preview" id="img-preview" alt="" hidden/>
    <pre class="desc" id="img-desc" aria-live="polite"></pre>
  </div>
</section>

<section id="settings">
  <div class="card">
    <div class="row"><label>Font size <input type="range" min="12" max="32" step="1" data-key="fontSize"/></label><b id="fs-label"></b></div>
    <div class="row">Contrast
      <button data-set="contrastMode" data-val="light">Light</button>
      <button data-set="contrastMode" data-val="dark">Dark</button>
      <button data-set="contrastMode" data-val="high-contrast">High contrast</button></div>
    <div class="row"><label><input type="checkbox" data-key="dyslexiaFont"/> Dyslexia-friendly font</label></div>
    <div class="row">Input mode
      <button data-set="inputMode" data-val="voice">Voice only</button>
      <button data-set="inputMode" data-val="text">Text only</button>
      <button data-set="inputMode" data-val="mixed">Mixed</button></div>
    <div class="row"><label>Speech rate <input type="range" min="0.5" max="2" step="0.25" data-key="speechRate"/></label></div>
    <div class="row"><label><input type="checkbox" data-key="captionsEnabled"/> Captions</label></div>
    <div class="row"><label>Language <select id="lang-select"></select></label></div>
    <div class="row"><label><input type="checkbox" data-key="demoMode"/> Demo mode</label></div>
  </div>
</section>

</main>
<script>
const API = '';
const SAMPLE = `Welcome to the Inclusive Learning Companion. This is a demonstration of our text-to-speech reader with synchronized highlighting. You can control playback with the buttons, your voice, or hand gestures.`;
const DEFAULTS = {fontSize:16,contrastMode:'light',dyslexiaFont:false,inputMode:'mixed',
  speechRate:1,captionsEnabled:true,language:'en-US',demoMode:false};

// ── settings ──
let settings = Object.assign({}, DEFAULTS, JSON.parse(localStorage.getItem('accessibility-settings')||'{}'));
function applyEffects(){
  const root=document.documentElement;
  root.style.setProperty('--font-size', settings.fontSize+'px');
  root.classList.remove('light','dark','high-contrast'); root.classList.add(settings.contrastMode);
  document.body.classList.toggle('dyslexia-font', !!settings.dyslexiaFont);
  document.getElementById('rate-label').textContent=Number(settings.speechRate).toFixed(2);
  document.getElementById('fs-label').textContent=settings.fontSize+'px';
  document.querySelectorAll('[data-key]').forEach(el=>{
    const v=settings[el.dataset.key];
    if(el.type==='checkbox') el.checked=!!v; else el.value=v;
  });
  document.querySelectorAll('[data-set]').forEach(el=>
    el.setAttribute('aria-pressed', settings[el.dataset.set]===el.dataset.val));
  document.getElementById('lang-select').value=settings.language;
}
function updateSettings(updates){
  settings=Object.assign({}, settings, updates);
  localStorage.setItem('accessibility-settings', JSON.stringify(settings));
  fetch(API+'/api/settings',{method:'POST',headers:{'Content-Type':'application/json'},body:JSON.stringify(settings)})
    .catch(err=>console.warn('Settings sync failed', err));
  applyEffects();
}
fetch(API+'/api/settings').then(r=>r.json()).then(data=>{
  if(Object.keys(data).length>0){ settings=Object.assign({}, settings, data); applyEffects(); }
}).catch(()=>console.log('Using local settings only'));

document.querySelectorAll('[data-key]').forEach(el=>el.addEventListener('change',()=>{
  updateSettings({[el.dataset.key]: el.type==='checkbox' ? el.checked : Number(el.value)});
}));
document.querySelectorAll('[data-set]').forEach(el=>el.addEventListener('click',()=>
  updateSettings({[el.dataset.set]: el.dataset.val})));
document.getElementById('lang-select').addEventListener('change',e=>updateSettings({language:e.target.value}));
fetch(API+'/api/languages').then(r=>r.json()).then(langs=>{
  const sel=document.getElementById('lang-select');
  langs.forEach(l=>{const o=document.createElement('option'); o.value=l.code; o.textContent=l.name; sel.appendChild(o);});
  sel.value=settings.language;
});

// ── navigation ──
function go(page){
  stopAll();
  document.querySelectorAll('section').forEach(s=>s.classList.toggle('active', s.id===page));
  location.hash=page;
  if(page==='captions') loadCaptions();
}
document.querySelectorAll('[data-go]').forEach(b=>b.addEventListener('click',()=>go(b.dataset.go)));

// ── onboarding ──
fetch(API+'/api/personas').then(r=>r.json()).then(ps=>{
  const box=document.getElementById('personas');
  ps.forEach(p=>{
    const b=document.createElement('button'); b.className='card';
    b.innerHTML='<h3>'+p.title+'</h3><p class="muted">'+p.description+'</p>';
    b.onclick=async ()=>{
      const r=await fetch(API+'/api/personas/'+p.id,{method:'POST'});
      if(r.ok){ settings=Object.assign({}, settings, await r.json()); localStorage.setItem('accessibility-settings', JSON.stringify(settings)); applyEffects(); }
      box.querySelectorAll('button').forEach(x=>x.setAttribute('aria-pressed', x===b));};
    box.appendChild(b);
  });
});
function finishOnboarding(demo){
  updateSettings({demoMode:demo});
  localStorage.setItem('onboarded','1'); go('dashboard');
}

// ── reader: playback with highlight ──
const readerEl=document.getElementById('reader-text');
const tokens=SAMPLE.split(/(\\s+)/);
readerEl.innerHTML=tokens.map((t,i)=>'<span data-i="'+i+'">'+t+'</span>').join('');
function highlight(i){
  readerEl.querySelectorAll('span.hl').forEach(s=>s.classList.remove('hl'));
  const s=readerEl.querySelector('span[data-i="'+i+'"]'); if(s) s.classList.add('hl');
}
let playing=false;
function startSpeech(){
  if(!window.speechSynthesis){ alert('Text-to-speech is not supported in your browser'); return; }
  speechSynthesis.cancel();
  const u=new SpeechSynthesisUtterance(SAMPLE);
  u.rate=settings.speechRate; u.lang=settings.language;
  let words=0;
  u.onboundary=e=>{ if(e.name==='word'){ words++; highlight(words*2); } };
  u.onend=()=>{ playing=false; highlight(-1); setPlayLabel(); };
  speechSynthesis.speak(u); playing=true; setPlayLabel();
}
function pauseSpeech(){ if(window.speechSynthesis) speechSynthesis.pause(); playing=false; setPlayLabel(); }
function resumeSpeech(){ speechSynthesis.resume(); playing=true; setPlayLabel(); }
function stopSpeech(){ if(window.speechSynthesis) speechSynthesis.cancel(); playing=false; highlight(-1); setPlayLabel(); }
function togglePlay(){ if(playing) pauseSpeech(); else if(window.speechSynthesis && speechSynthesis.paused) resumeSpeech(); else startSpeech(); }
function setPlayLabel(){ document.getElementById('play-btn').textContent = playing ? 'Pause' : 'Play'; }
function runCommand(cmd){
  if(cmd==='play') startSpeech();
  else if(cmd==='pause') pauseSpeech();
}

async function speakText(text){
  if(!text) return;
  if(window.speechSynthesis){
    speechSynthesis.cancel();
    const u=new SpeechSynthesisUtterance(text); u.rate=settings.speechRate; u.lang=settings.language;
    speechSynthesis.speak(u); return;
  }
  const r=await fetch(API+'/api/speak',{method:'POST',headers:{'Content-Type':'application/json'},
    body:JSON.stringify({text, language:settings.language, speechRate:settings.speechRate})});
  if(!r.ok){ alert('Speech is not available'); return; }
  const d=await r.json(); new Audio('data:audio/mp3;base64,'+d.audio).play();
}

// ── speech capture ──
let recognition=null;
function newRecognition(continuous){
  const SR=window.SpeechRecognition||window.webkitSpeechRecognition;
  if(!SR){ alert('Speech recognition is not supported in your browser'); return null; }
  if(recognition){ recognition.onend=null; recognition.stop(); }
  const rec=new SR(); rec.continuous=continuous; rec.interimResults=continuous; rec.lang=settings.language;
  recognition=rec; return rec;
}
function stopAll(){
  if(recognition){ recognition.onend=null; recognition.stop(); recognition=null; }
  notesOn=false; capOn=false;
  document.getElementById('notes-rec').textContent='Start dictation';
  document.getElementById('cap-rec').textContent='Start captions';
  stopSpeech(); stopGestures(); stopCamera();
}
function splitResults(e){
  let interim='', fin='';
  for(let i=e.resultIndex;i<e.results.length;i++){
    const t=e.results[i][0].transcript;
    if(e.results[i].isFinal) fin+=t; else interim+=t;
  }
  return [interim, fin];
}

function voiceCommand(){
  const rec=newRecognition(false); if(!rec) return;
  rec.onresult=async e=>{
    const r=await fetch(API+'/api/voice-command',{method:'POST',headers:{'Content-Type':'application/json'},
      body:JSON.stringify({transcript:e.results[0][0].transcript, speechRate:settings.speechRate})});
    const d=await r.json();
    if(d.speechRate!==settings.speechRate) updateSettings({speechRate:d.speechRate});
    runCommand(d.command);
  };
  rec.start();
}

async function simplify(){
  const r=await fetch(API+'/api/simplify-text',{method:'POST',headers:{'Content-Type':'application/json'},
    body:JSON.stringify({text:SAMPLE})});
  const d=await r.json();
  if(!r.ok){ alert(d.error||'Simplification failed'); return; }
  readerEl.textContent=d.simplified;
}

// ── notes ──
let notesOn=false;
function toggleNotes(){
  if(notesOn){ stopAll(); return; }
  const rec=newRecognition(true); if(!rec) return;
  const area=document.getElementById('notes-text'), interimEl=document.getElementById('notes-interim');
  rec.onresult=e=>{ const [interim, fin]=splitResults(e); if(fin) area.value+=fin+' '; interimEl.textContent=interim; };
  rec.onend=()=>{ if(notesOn) rec.start(); };
  notesOn=true; document.getElementById('notes-rec').textContent='Stop dictation'; rec.start();
}
async function saveNote(){
  const text=document.getElementById('notes-text').value.trim();
  if(!text){ alert('Nothing to save'); return; }
  try{
    const r=await fetch(API+'/api/notes',{method:'POST',headers:{'Content-Type':'application/json'},body:JSON.stringify({text})});
    if(!r.ok) throw new Error(r.status);
    alert('Note saved!');
  }catch(e){ alert('Failed to save'); }
}
async function loadNotes(){
  try{
    const notes=await (await fetch(API+'/api/notes')).json();
    if(!notes.length){ alert('No saved notes found.'); return; }
    const ul=document.getElementById('notes-list'); ul.innerHTML='';
    notes.forEach(n=>{ const li=document.createElement('li'); li.textContent=new Date(n.date).toLocaleString()+' - '+n.text; ul.appendChild(li); });
  }catch(e){ alert('Failed to load notes'); }
}
function downloadText(text, prefix){
  const a=document.createElement('a');
  a.href=URL.createObjectURL(new Blob([text],{type:'text/plain'}));
  a.download=prefix+'-'+new Date().toISOString().split('T')[0]+'.txt';
  a.click();
}
function exportNotes(){ downloadText(document.getElementById('notes-text').value, 'notes'); }

// ── captions ──
let capOn=false;
function addCaption(c){ const li=document.createElement('li'); li.textContent='['+c.timestamp+'] '+c.text; document.getElementById('cap-list').appendChild(li); }
function loadCaptions(){
  fetch(API+'/api/captions').then(r=>r.json()).then(cs=>{
    document.getElementById('cap-list').innerHTML=''; if(Array.isArray(cs)) cs.forEach(addCaption);
  }).catch(e=>console.error('Failed to load captions', e));
}
function exportCaptions(){
  const lines=[...document.querySelectorAll('#cap-list li')].map(li=>li.textContent);
  downloadText(lines.join('\\n\\n'), 'captions');
}
function toggleCaptions(){
  if(capOn){ stopAll(); return; }
  if(!settings.captionsEnabled){ alert('Captions are turned off in Settings'); return; }
  const rec=newRecognition(true); if(!rec) return;
  const live=document.getElementById('cap-live');
  rec.onresult=e=>{
    const [interim, fin]=splitResults(e);
    if(fin){
      const c={text:fin, timestamp:new Date().toLocaleTimeString()};
      addCaption(c); live.textContent='';
      fetch(API+'/api/captions',{method:'POST',headers:{'Content-Type':'application/json'},body:JSON.stringify(c)})
        .catch(err=>console.error('Failed to save caption', err));
    } else live.textContent=interim;
  };
  rec.onend=()=>{ if(capOn) rec.start(); };
  capOn=true; document.getElementById('cap-rec').textContent='Stop captions'; rec.start();
}

// ── image description ──
document.getElementById('img-file').addEventListener('change',e=>{
  const f=e.target.files[0]; if(!f) return;
  const img=document.getElementById('img-preview'); img.src=URL.createObjectURL(f); img.hidden=false;
  analyzeImage();
});
let camStream=null;
async function toggleCamera(){
  if(camStream){ capturePhoto(); return; }
  const video=document.getElementById('cam-video');
  try{ camStream=await navigator.mediaDevices.getUserMedia({video:{facingMode:'environment'}}); }
  catch(e){ alert('Could not access camera. Please check permissions.'); return; }
  video.srcObject=camStream; video.hidden=false;
  document.getElementById('cam-btn').textContent='Capture';
}
function stopCamera(){
  if(camStream){ camStream.getTracks().forEach(t=>t.stop()); camStream=null; }
  const v=document.getElementById('cam-video'); if(v) v.hidden=true;
  const b=document.getElementById('cam-btn'); if(b) b.textContent='Use camera';
}
function capturePhoto(){
  const video=document.getElementById('cam-video');
  if(!video.videoWidth) return;
  const canvas=document.createElement('canvas');
  canvas.width=video.videoWidth; canvas.height=video.videoHeight;
  canvas.getContext('2d').drawImage(video,0,0);
  const img=document.getElementById('img-preview'); img.src=canvas.toDataURL('image/jpeg'); img.hidden=false;
  stopCamera();
  canvas.toBlob(blob=>analyzeImage(new File([blob], 'capture.jpg', {type:'image/jpeg'})), 'image/jpeg', 0.9);
}
async function analyzeImage(captured){
  const f=captured || document.getElementById('img-file').files[0];
  const out=document.getElementById('img-desc');
  if(!f && !settings.demoMode){ out.textContent='Choose an image first.'; return; }
  out.textContent='Analyzing…';
  const fd=new FormData();
  if(f) fd.append('image', f, f.name);
  fd.append('useGemini', String(document.getElementById('use-gemini').checked));
  fd.append('demoMode', String(!!settings.demoMode));
  try{
    const r=await fetch(API+'/api/analyze-image',{method:'POST',body:fd});
    if(!r.ok) throw new Error('Analysis failed');
    const d=await r.json();
    const label={gemini:'Analysis by Google Gemini', local:'Analysis by local object detection + OCR', synthetic:'Demo analysis'}[d.source];
    out.textContent=label+'\\n\\n'+d.description;
  }catch(e){ out.textContent="Sorry, I couldn't analyze this image. Please try again."; }
}

// ── gestures ──
let gestureTimer=null, gestureStream=null, lastGesture=null;
async function toggleGestures(){
  if(gestureTimer){ stopGestures(); return; }
  const video=document.getElementById('gesture-video');
  try{ gestureStream=await navigator.mediaDevices.getUserMedia({video:true}); }
  catch(e){ alert('Could not access webcam for gestures.'); return; }
  video.srcObject=gestureStream; video.hidden=false;
  const canvas=document.createElement('canvas');
  gestureTimer=setInterval(()=>{
    if(!video.videoWidth) return;
    canvas.width=video.videoWidth; canvas.height=video.videoHeight;
    canvas.getContext('2d').drawImage(video,0,0);
    canvas.toBlob(async blob=>{
      const fd=new FormData(); fd.append('frame', blob, 'frame.jpg');
      const d=await (await fetch(API+'/api/gesture',{method:'POST',body:fd})).json();
      document.getElementById('gesture-label').textContent = d.ready ? (d.gesture||'') : 'Loading gesture model…';
      if(d.command && d.command!==lastGesture) runCommand(d.command);
      lastGesture=d.command;
    }, 'image/jpeg', 0.7);
  }, 500);
}
function stopGestures(){
  if(gestureTimer){ clearInterval(gestureTimer); gestureTimer=null; }
  if(gestureStream){ gestureStream.getTracks().forEach(t=>t.stop()); gestureStream=null; }
  const v=document.getElementById('gesture-video'); if(v) v.hidden=true;
}

applyEffects();
go(location.hash.slice(1) || (localStorage.getItem('onboarded') ? 'dashboard' : 'landing'));
</script>
</body>
</html>"""
